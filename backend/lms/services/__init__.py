"""
Service layer: business rules.
"""

from lms.services.activity import ActivityService
from lms.services.auth import AuthService
from lms.services.fine import FineService
from lms.services.item import ItemService
from lms.services.loan import LoanService
from lms.services.mailer import MailerService
from lms.services.reservation import ReservationService
from lms.services.system import SystemService
from lms.services.user import UserService

__all__ = [
    "ActivityService",
    "AuthService",
    "FineService",
    "ItemService",
    "LoanService",
    "MailerService",
    "ReservationService",
    "SystemService",
    "UserService",
]
