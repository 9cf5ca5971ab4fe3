from .certificate_alerts import CertificateAlertService
from .compliance import LaborLawComplianceService
from .invoices import DutchInvoiceService
from .job_search import JobSearchController
from .notifications import GuardNotificationService, NotificationPreferencesService
from .payments import PaymentErrorHandler, PaymentGateway, PaymentService
from .profile import ProfileController
from .tax import ZZPTaxService

__all__ = [
    "CertificateAlertService",
    "DutchInvoiceService",
    "GuardNotificationService",
    "JobSearchController",
    "LaborLawComplianceService",
    "NotificationPreferencesService",
    "PaymentErrorHandler",
    "PaymentGateway",
    "PaymentService",
    "ProfileController",
    "ZZPTaxService",
]
