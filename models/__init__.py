from .wizard import WizardState, PackageInstructions, LabelValue
from .catalog import CatalogEntry, Option, PackageInstructionField
from .purchase_order import (
    PurchaseOrderDocument, CompanyInfo, ContactInfo, GeneralPOInfo, POLineItem,
    SummaryTotals, PackagingInstruction, AnnexItem, AuthDetails,
)
from .result import ValidationIssue, SubmissionResult, OrderSubmission, OrderSummary, SummaryLine

__all__ = [
    "WizardState", "PackageInstructions", "LabelValue",
    "CatalogEntry", "Option", "PackageInstructionField",
    "PurchaseOrderDocument", "CompanyInfo", "ContactInfo", "GeneralPOInfo", "POLineItem",
    "SummaryTotals", "PackagingInstruction", "AnnexItem", "AuthDetails",
    "ValidationIssue", "SubmissionResult", "OrderSubmission", "OrderSummary", "SummaryLine",
]
