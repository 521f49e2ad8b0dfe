from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"

    def __str__(self):
        return self.value


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    NEGOTIATING = "negotiating"
    CONVERTED = "converted"
    LOST = "lost"
    ARCHIVED = "archived"

    def __str__(self):
        return self.value


class ServiceCategory(str, Enum):
    LANDING_PAGE = "landing_page"
    MULTIPAGE_SITE = "multipage_site"
    SITE_REDESIGN = "site_redesign"
    DESIGN_INTEGRATION = "design_integration"
    UX_UI_DESIGN = "ux_ui_design"
    TRAINING = "training"
    PARTNERSHIP = "partnership"
    OTHER = "other"

    def __str__(self):
        return self.value


class EngagementStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    SUSPENDED = "suspended"

    def __str__(self):
        return self.value


class ConversionState(str, Enum):
    COLLECTING_ENGAGEMENT = "collecting_engagement"
    COLLECTING_CREDENTIAL = "collecting_credential"
    COMPLETED = "completed"

    def __str__(self):
        return self.value


class ConversionErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    CUSTOMER_CREATION_FAILED = "customer_creation_failed"
    ENGAGEMENT_CREATION_FAILED = "engagement_creation_failed"
    CREDENTIAL_EMAIL_TAKEN = "credential_email_taken"
    CREDENTIAL_CREATION_FAILED = "credential_creation_failed"
    LEAD_RETIREMENT_FAILED = "lead_retirement_failed"
    SUBMISSION_IN_PROGRESS = "submission_in_progress"
    INVALID_STATE = "invalid_state"

    def __str__(self):
        return self.value


class ErrorSeverity(str, Enum):
    ERROR = "error"
    CRITICAL = "critical"

    def __str__(self):
        return self.value


class AuditAction(str, Enum):
    CREATE_LEAD = "create_lead"
    UPDATE_LEAD = "update_lead"
    DELETE_LEAD = "delete_lead"
    START_CONVERSION = "start_conversion"
    CREATE_CUSTOMER = "create_customer"
    CREATE_ENGAGEMENT = "create_engagement"
    PROVISION_CREDENTIAL = "provision_credential"
    RETIRE_LEAD = "retire_lead"
    COMPLETE_CONVERSION = "complete_conversion"
    ABANDON_CONVERSION = "abandon_conversion"
    LOGIN = "login"

    def __str__(self):
        return self.value
