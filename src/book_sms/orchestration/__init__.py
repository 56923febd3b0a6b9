"""
Orchestration layer.

Runs the per-message pipeline and formats replies for the SMS transport.
"""
from .orchestrator import CANCELLED_MESSAGE, ERROR_MESSAGE, SmsOrchestrator
from .twiml import format_twiml_response, split_sms

__all__ = [
    "SmsOrchestrator",
    "format_twiml_response",
    "split_sms",
    "CANCELLED_MESSAGE",
    "ERROR_MESSAGE",
]
