"""ID Card Studio Models"""

from .templates import (
    FieldType,
    TemplateStatus,
    OCRBlock,
    OCRData,
    TemplateField,
    CardDesign,
    Template,
    RunExtractionRequest,
    ExtractionResponse,
    UpdateFieldsRequest,
    TemplateResponse,
)
from .forms import (
    FormStatus,
    Form,
    PublishFormRequest,
    PublishFormResponse,
    SubmitFormRequest,
    SubmitFormResponse,
    PublicFormView,
)
from .submissions import SubmissionStatus, Submission
from .companies import (
    SubscriptionPlan,
    SubscriptionStatus,
    CompanySubscription,
    Company,
    PlanDetails,
    PLANS,
    can_generate_card,
    CreateCompanyRequest,
    CompanyUsageResponse,
)
from .cards import GeneratedCard, CardData, IssueCardRequest, IssueCardResponse

__all__ = [
    "FieldType",
    "TemplateStatus",
    "OCRBlock",
    "OCRData",
    "TemplateField",
    "CardDesign",
    "Template",
    "RunExtractionRequest",
    "ExtractionResponse",
    "UpdateFieldsRequest",
    "TemplateResponse",
    "FormStatus",
    "Form",
    "PublishFormRequest",
    "PublishFormResponse",
    "SubmitFormRequest",
    "SubmitFormResponse",
    "PublicFormView",
    "SubmissionStatus",
    "Submission",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "CompanySubscription",
    "Company",
    "PlanDetails",
    "PLANS",
    "can_generate_card",
    "CreateCompanyRequest",
    "CompanyUsageResponse",
    "GeneratedCard",
    "CardData",
    "IssueCardRequest",
    "IssueCardResponse",
]
