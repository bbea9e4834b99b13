from .http import HTTPSessionBroker
from .openai import OpenAISessionBroker

__all__ = ["HTTPSessionBroker", "OpenAISessionBroker"]
