"""
Patient-facing and operator-facing message copy.

Clinic-specific values are injected from configuration, not hardcoded.
Messages use WhatsApp formatting (*bold*, _italic_).
"""

from appointment_bot.config import settings
from appointment_bot.tools.services import CURRENCY

_clinic = settings.clinic

WELCOME_MENU = (
    f"🤖 Gracias por contactar a *{_clinic.name}*.\n"
    "¿En qué puedo apoyarte hoy?\n\n"
    "1. Agendar cita\n"
    "2. Conocer la ubicación del consultorio\n"
    "3. Horarios de servicio\n"
    "4. Tengo una emergencia / hablar con la psicóloga\n"
    "5. Olvidé mi cita / perdí el link de la reunión\n"
    "6. Conocer la información y costo de las terapias\n"
    "7. Atención a empresas\n\n"
    "_Escribe el número de la opción, o `menú` para volver aquí._"
)

EMERGENCY_COPY = (
    f"⚠️ *Importante*: {_clinic.emergency_note}\n\n"
    "Te atiende una psicóloga en breve por este medio. "
    "El asistente automático queda *en pausa*."
)

HOURS_COPY = (
    f"🕒 *Horarios de servicio*\n{_clinic.hours}\n\n"
    "¿Deseas *agendar una cita*? Responde *1*.\nEscribe *menú* para regresar."
)

LOCATION_COPY = (
    f"📍 *Ubicación del consultorio*\n{_clinic.address}\n\n"
    f"Mapa: {_clinic.maps_url}\n\n"
    "Si necesitas referencias adicionales, con gusto te apoyamos."
)

THERAPIES_COPY = (
    "Ofrecemos atención *presencial* y *en línea*.\n\n"
    "🧠 *Terapias disponibles*\n"
    "1) Terapia individual\n"
    "2) Terapia de pareja\n"
    "3) Terapia para adolescentes (15+)\n\n"
    "Responde con el *número* para ver detalles, costo y duración."
)

BUSINESS_COPY = (
    "🏢 *Atención a empresas*\n"
    "Ofrecemos charlas, talleres de bienestar emocional, intervención en crisis "
    "y evaluaciones. Compártenos el tamaño de tu empresa y el servicio de interés "
    "para preparar una propuesta.\n\n"
    "¿Deseas que te llame una asesora? *sí/no*"
)

ASK_NAME = "📅 *Agendar cita*\nPaso 1/4: Indícame tu *nombre completo*."
ASK_NAME_FROM_THERAPY = (
    "Perfecto, vamos a *agendar tu cita*.\nPaso 1/4: Indícame tu *nombre completo*."
)
ASK_DATE = (
    "Paso 2/4: Escribe la *fecha* (ej.: *próximo jueves*, *17 de agosto*, *17/08/2025*)."
)
DATE_NOT_RECOGNIZED = (
    "No pude interpretar la fecha. Intenta con *mañana*, *próximo jueves* o *17/08/2025*."
)
ASK_DATE_AGAIN = "Ok, escribe nuevamente la *fecha*."
ASK_TIME = "Paso 3/4: Ahora dime la *hora* (ej.: *3 pm*, *15:00*, *medio día*)."
TIME_NOT_RECOGNIZED = "No pude interpretar la hora. Intenta con *3 pm* o *15:00*."
ASK_TIME_AGAIN = "Ok, escribe nuevamente la *hora*."
ASK_YES_NO = "Responde *sí* o *no*."

SLOT_BUSY = "⛔ Ese horario ya está ocupado. ¿Propones otra *fecha* u *hora*?"
CALENDAR_AUTH_FAILURE = (
    "⚠️ No pude verificar/crear la cita en Calendar por un problema de autorización.\n"
    "Por favor intenta más tarde o escribe *4* para asistencia humana."
)
CALENDAR_TRANSIENT_FAILURE = (
    "⚠️ No pude verificar/crear la cita en Calendar por un error temporal.\n"
    "Intenta más tarde o escribe *4* para asistencia."
)

THERAPY_CHOOSE = "Por favor elige *1*, *2* o *3*."
THERAPY_NUDGE = "¿Deseas *agendar*? Responde *1*, o escribe *menú* para regresar."

BUSINESS_ASK_DETAILS = (
    "Perfecto, una asesora te contactará. ¿Podrías compartir *nombre de tu empresa* "
    "y un *teléfono* de contacto?"
)
BUSINESS_DECLINED = "De acuerdo. Si cambias de opinión, escribe *7* o *menú*."
BUSINESS_THANKS = (
    "¡Gracias! Compartimos tus datos con el equipo y te contactarán pronto. "
    "Escribe *menú* para volver."
)

FORGOT_ASK_NAME = (
    "🔗 *Recuperar cita/link*\n"
    "Paso 1/2: Escríbeme tu *nombre completo* como aparece en tu cita."
)
FORGOT_ASK_DATE = (
    "Paso 2/2: ¿Recuerdas la *fecha aproximada* de tu cita? "
    "(ej.: *lunes*, *ayer*, *15/09*). Si no, escribe *no sé*."
)
FORGOT_THANKS = (
    "Gracias. Revisaremos tu registro y te compartiremos el enlace o confirmación. "
    "Escribe *menú* para volver."
)

HUMAN_ACK = "Gracias, una psicóloga dará seguimiento por este medio. 🙌"
GENERIC_ERROR = "⚠️ Ocurrió un error. Escribe *hola* para ver el menú."
INPUT_TOO_LONG = "Tu mensaje es muy largo. ¿Podrías resumirlo en pocas líneas?"

ADMIN_HELP = (
    "Comandos admin:\n"
    "• activate bot → reactiva el bot en todos los chats\n"
    "• activate bot 521XXXXXXXXXX → reactiva el bot para ese número"
)
ADMIN_REACTIVATED_ALL = "✅ Bot reactivado para *todos* los chats."


def build_group_trigger_hint(trigger: str) -> str:
    return f'👋 Escribe tu consulta después de "{trigger}". Ej: *{trigger} hola*'


def build_date_confirmation(readable: str, iso: str) -> str:
    return f"Entendí la fecha como: *{readable}* ({iso}). ¿Es correcto? *sí/no*"


def build_time_confirmation(readable: str, iso: str) -> str:
    return f"Entendí la hora como: *{readable}* ({iso}). ¿Es correcto? *sí/no*"


def build_policy_rejection(reason: str) -> str:
    return f"⏰ Ese horario no está disponible. {reason}\nEscribe otra *hora*, por favor."


def build_booking_confirmation(date_iso: str, time_iso: str) -> str:
    return (
        f"✅ *Cita creada* para *{date_iso}* a las *{time_iso}*.\n"
        "Si necesitas reprogramar, responde *menú* y elige la opción 5."
    )


def build_therapy_detail(details: dict) -> str:
    """Label, price and duration for one therapy, with a booking nudge."""
    return (
        f"*{details['label']}*\n"
        f"Costo: *${details['price']} {CURRENCY}*\n"
        f"Duración: *{details['duration_min']} minutos*\n\n"
        "¿Deseas *agendar*? Responde *1*."
    )


def build_admin_reactivated(conversation_id: str) -> str:
    return f"✅ Bot reactivado para {conversation_id}"


def build_emergency_alert(conversation_id: str, digits: str, mute_hours: float) -> str:
    return (
        "🚨 *ALERTA EMERGENCIA / HUMANO*\n"
        f"• Cliente (chatId): {conversation_id}\n"
        f"• Desde ahora el bot está *pausado {mute_hours:g}h* para este chat.\n"
        f"• Para reactivar manualmente: *activate bot {digits}* (envíalo aquí)."
    )


def build_booking_alert(conversation_id: str, name: str, date_iso: str, time_iso: str,
                        service_label: str, event_id: str) -> str:
    return (
        "📅 *ALERTA CITA*\n"
        f"• Cliente: {conversation_id}\n"
        f"• Nombre: {name}\n"
        f"• Servicio: {service_label}\n"
        f"• Fecha: {date_iso}\n"
        f"• Hora: {time_iso}\n"
        f"• Evento ID: {event_id or 'N/D'}"
    )


def build_business_lead_alert(conversation_id: str, details: str) -> str:
    return (
        "🏢 *LEAD EMPRESAS*\n"
        f"• Cliente: {conversation_id}\n"
        f"• Datos: {details}"
    )


def build_forgot_alert(conversation_id: str, name: str, approx_date: str) -> str:
    return (
        "🔗 *RECUPERAR CITA/LINK*\n"
        f"• Cliente: {conversation_id}\n"
        f"• Nombre: {name}\n"
        f"• Fecha aprox: {approx_date}"
    )
