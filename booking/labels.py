"""
Display labels for every enumerated domain value.

This is the only place labels are defined. API responses add ``*_label``
fields through ``label_for`` and the AI assistant uses the same names in its
prompts.
"""

from enum import Enum

from database.models import (
    AppointmentStatus,
    ConnectionStatus,
    Frequency,
    PaymentMethod,
    PaymentStatus,
    ServiceType,
    SubscriptionType,
    UserType,
)

# Keyed by enum class first: str-valued members of different enums compare
# equal ("pending"), so they cannot share one flat dict.
LABELS: dict[type[Enum], dict[Enum, str]] = {
    ServiceType: {
        ServiceType.VET_VISIT: "Visita veterinaria",
        ServiceType.FARRIER: "Herraje",
        ServiceType.DENTAL: "Dentista",
        ServiceType.PHYSIO: "Fisioterapia",
        ServiceType.TRAINING: "Entrenamiento",
        ServiceType.CLEANING: "Limpieza",
    },
    AppointmentStatus: {
        AppointmentStatus.PENDING: "Pendiente",
        AppointmentStatus.CONFIRMED: "Confirmada",
        AppointmentStatus.CANCELLED: "Cancelada",
        AppointmentStatus.COMPLETED: "Completada",
    },
    PaymentStatus: {
        PaymentStatus.PENDING: "Pago pendiente",
        PaymentStatus.PAID_ADVANCE: "Anticipo pagado",
        PaymentStatus.PAID_COMPLETE: "Pagado",
        PaymentStatus.UNPAID: "No pagado",
    },
    PaymentMethod: {
        PaymentMethod.CARD: "Tarjeta",
        PaymentMethod.GOOGLE_PAY: "Google Pay",
        PaymentMethod.APPLE_PAY: "Apple Pay",
        PaymentMethod.SAMSUNG_PAY: "Samsung Pay",
    },
    Frequency: {
        Frequency.WEEKLY: "Semanal",
        Frequency.BIWEEKLY: "Quincenal",
        Frequency.MONTHLY: "Mensual",
    },
    UserType: {
        UserType.CLIENT: "Propietario",
        UserType.VET: "Veterinario",
        UserType.FARRIER: "Herrador",
        UserType.DENTIST: "Dentista equino",
        UserType.PHYSIO: "Fisioterapeuta",
        UserType.TRAINER: "Entrenador",
        UserType.CLEANER: "Limpieza de vehículos",
        UserType.FOOD: "Alimentación",
        UserType.EVENTS: "Eventos",
    },
    ConnectionStatus: {
        ConnectionStatus.PENDING: "Pendiente",
        ConnectionStatus.ACCEPTED: "Aceptada",
        ConnectionStatus.REJECTED: "Rechazada",
    },
    SubscriptionType: {
        SubscriptionType.BASIC: "Básico",
        SubscriptionType.PREMIUM: "Premium",
    },
}


def label_for(value: Enum | None) -> str | None:
    """Label for an enum member, falling back to its raw value."""
    if value is None:
        return None
    return LABELS.get(type(value), {}).get(value, str(getattr(value, "value", value)))
