from formflow.drivers.base import BaseDriver
from formflow.drivers.conversational import ChatTurn, ConversationalDriver, SelectionTrigger
from formflow.drivers.wizard import WizardDriver

__all__ = [
    "BaseDriver",
    "ChatTurn",
    "ConversationalDriver",
    "SelectionTrigger",
    "WizardDriver",
]
