from .repository import NotificationRepository, extract_resource, serialize_payload

__all__ = ["NotificationRepository", "extract_resource", "serialize_payload"]
