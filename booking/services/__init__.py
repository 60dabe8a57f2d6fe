"""
Booking services module.

Business logic behind the API routes. Each public coroutine is one unit of
work on its own AsyncSession.

Services:
- appointment_service: create, transition, respond, edit, remind
- appointment_query_service: listing tabs, per-horse history, calendar
- recurrence_service: lazy rrule expansion of periodic appointments
- payment_service: PaymentIntents and payment webhooks
- connection_service: client <-> professional connections
- message_service: direct messages and conversation previews
- review_service: ratings of professionals
- horse_service / record_service: horse profiles and history
- notification_service: in-app notifications
- subscription_service / discount_service: plans, checkout and codes
- connect_service: Stripe Connect onboarding
- statistics_service: professional dashboard figures
- ai_assistant_service: LLM assistant with fallback
- user_service: accounts and profiles

Import from the submodules directly (``from booking.services.appointment_service
import create_appointment``).
"""
