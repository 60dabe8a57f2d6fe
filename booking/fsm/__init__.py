"""
Appointment lifecycle state machine.

Public exports:
    - AppointmentFSM: transition table, actor rules and payment progression
    - TransitionResult: outcome of an applied transition
"""

from booking.fsm.appointment_fsm import AppointmentFSM, TransitionResult

__all__ = ["AppointmentFSM", "TransitionResult"]
