from .access_request import AccessRequest, AccessStatus
from .contact_message import ContactMessage
from .admin_user import AdminUser
