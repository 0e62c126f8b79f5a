from .repository import AppointmentRepository

__all__ = ["AppointmentRepository"]
