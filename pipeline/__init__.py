from .reference_data import ReferenceData
from .numbering import next_po_number
from .transformer import OrderTransformer
from .validator import DocumentValidator
from .submission import SubmissionGateway
from .proxy import ForwardingProxy
from .wizard import WizardSession, SessionStore
from .review import ReviewRenderer, summarize_order
from .processor import OrderProcessor

__all__ = [
    "ReferenceData", "next_po_number", "OrderTransformer", "DocumentValidator",
    "SubmissionGateway", "ForwardingProxy", "WizardSession", "SessionStore",
    "ReviewRenderer", "summarize_order", "OrderProcessor",
]
