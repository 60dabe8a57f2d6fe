"""
AI assistant for horse owners and equestrian professionals.

The system prompt depends on the user's role: a specialty prompt for each
professional type, a generic equine-care prompt for other professionals and
a horse-owner prompt for clients. Professionals get their profile appended
as context.

LLM calls go through the ``llm`` circuit breaker. Any failure (provider
error, timeout, open circuit) returns FALLBACK_RESPONSE with fallback=True
instead of an error.
"""

import logging
from typing import Any, assert_never

import pybreaker
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from booking.errors import BookingValidationError
from booking.labels import label_for
from booking.roles import ClientRole, ProfessionalRole, Role, role_for
from database.models import User, UserType
from shared.circuit_breaker import call_with_breaker, llm_breaker
from shared.llm_client import get_chat_model

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "Lo siento, ha ocurrido un error al procesar tu solicitud. "
    "Por favor, intenta nuevamente más tarde."
)
EMPTY_RESPONSE = "No pude generar una respuesta. Por favor, intenta de nuevo."

# Only the most recent turns are sent to the model
MAX_HISTORY_MESSAGES = 20
MAX_PROMPT_LENGTH = 4000

SPECIALTY_PROMPTS = {
    UserType.VET: (
        "Eres un veterinario equino experto, con amplio conocimiento en enfermedades, "
        "tratamientos y cuidados médicos de caballos. Proporciona consejos médicos precisos "
        "pero recuerda que siempre se debe recomendar una visita presencial para "
        "diagnósticos definitivos."
    ),
    UserType.FARRIER: (
        "Eres un herrador equino profesional, con experiencia en el cuidado de cascos, "
        "herraje y problemas podales de caballos. Ofrece consejos sobre mantenimiento de "
        "cascos y soluciones para problemas comunes de herraje."
    ),
    UserType.PHYSIO: (
        "Eres un fisioterapeuta equino, especializado en terapias físicas, rehabilitación "
        "y manejo del dolor en caballos. Proporciona recomendaciones sobre ejercicios, "
        "estiramientos y técnicas para mejorar la movilidad y bienestar físico."
    ),
    UserType.DENTIST: (
        "Eres un dentista equino profesional, experto en salud dental de caballos, "
        "problemas de masticación y cuidados bucales. Ofrece consejos sobre signos de "
        "problemas dentales y mantenimiento preventivo."
    ),
    UserType.TRAINER: (
        "Eres un entrenador equino profesional, con experiencia en doma, comportamiento y "
        "entrenamiento de caballos. Proporciona técnicas de entrenamiento basadas en "
        "refuerzo positivo y soluciones para problemas de comportamiento."
    ),
    UserType.CLEANER: (
        "Eres un especialista en limpieza y mantenimiento de vehículos para transporte "
        "equino. Ofreces consejos sobre productos de limpieza seguros para caballos, "
        "mantenimiento preventivo y soluciones para problemas comunes en vehículos."
    ),
}

DEFAULT_PROFESSIONAL_PROMPT = (
    "Eres un especialista en cuidados equinos, con conocimiento general sobre caballos y "
    "su bienestar. Proporciona consejos generales sobre el cuidado y manejo de caballos."
)

CLIENT_PROMPT = (
    "Eres un asistente para propietarios de caballos. Ayudas a entender el cuidado diario, "
    "la alimentación, la salud y el bienestar del caballo, y a decidir cuándo conviene "
    "pedir cita con un veterinario, herrador u otro profesional."
)

PROMPT_SUFFIX = (
    " Responde en español, de manera concisa y útil. Evita información que pueda ser "
    "peligrosa para la salud del animal. Cuando sea apropiado, sugiere consultar al "
    "profesional en persona."
)


def build_system_prompt(role: Role, user: User | None = None) -> str:
    match role:
        case ClientRole():
            prompt = CLIENT_PROMPT
        case ProfessionalRole(specialty=specialty):
            prompt = SPECIALTY_PROMPTS.get(specialty, DEFAULT_PROFESSIONAL_PROMPT)
            if user is not None:
                context = [f"Especialidad: {label_for(specialty)}"]
                if user.location:
                    context.append(f"Zona de trabajo: {user.location}")
                if user.bio:
                    context.append(f"Perfil: {user.bio}")
                prompt += " Contexto del profesional que te consulta: " + ". ".join(context) + "."
        case _:
            assert_never(role)
    return prompt + PROMPT_SUFFIX


def build_messages(
    system_prompt: str,
    message: str,
    history: list[dict[str, str]] | None = None,
) -> list[BaseMessage]:
    """
    Convert the chat history into langchain messages.

    Raises:
        BookingValidationError: Empty/oversized message or unknown history role
    """
    text = (message or "").strip()
    if not text:
        raise BookingValidationError("message cannot be empty")
    if len(text) > MAX_PROMPT_LENGTH:
        raise BookingValidationError(f"message cannot exceed {MAX_PROMPT_LENGTH} characters")

    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    for entry in (history or [])[-MAX_HISTORY_MESSAGES:]:
        entry_role = entry.get("role", "")
        content = entry.get("content", "")
        if entry_role == "user":
            messages.append(HumanMessage(content=content))
        elif entry_role == "assistant":
            messages.append(AIMessage(content=content))
        else:
            raise BookingValidationError(f"Invalid history role: {entry_role}")
    messages.append(HumanMessage(content=text))
    return messages


async def ask_assistant(
    user: User,
    message: str,
    history: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """
    Returns:
        {"response": str, "fallback": bool}
    """
    role = role_for(user)
    messages = build_messages(build_system_prompt(role, user), message, history)

    try:
        llm = get_chat_model()
        result = await call_with_breaker(llm_breaker, llm.ainvoke, messages)
    except pybreaker.CircuitBreakerError:
        logger.error("LLM circuit breaker OPEN, returning fallback", extra={"user_id": user.id})
        return {"response": FALLBACK_RESPONSE, "fallback": True}
    except Exception as e:
        logger.error(
            f"LLM call failed: {type(e).__name__}: {e}",
            extra={"user_id": user.id},
            exc_info=True,
        )
        return {"response": FALLBACK_RESPONSE, "fallback": True}

    content = result.content if isinstance(result.content, str) else ""
    logger.info(f"AI response generated ({len(content)} chars)", extra={"user_id": user.id})
    return {"response": content.strip() or EMPTY_RESPONSE, "fallback": False}
