"""
Worker protocol.

Requests and responses are correlated by `id`; a response whose id has no
pending request is ignored by the orchestrator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MessageType(str, Enum):
    INIT = "INIT"                # payload: AssetSource
    RECOGNIZE = "RECOGNIZE"      # payload: image bytes


class ResponseType(str, Enum):
    RESULT = "RESULT"            # payload: None (INIT) or RecognitionResult
    ERROR = "ERROR"              # payload: Failure


@dataclass(frozen=True)
class WorkerMessage:
    id: str
    type: MessageType
    payload: Any = None


@dataclass(frozen=True)
class WorkerResponse:
    id: str
    type: ResponseType
    payload: Any = None
