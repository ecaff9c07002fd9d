"""
Typed request/response channel for the browser extension.

The content script, popup and background page all send ExtensionMessage
requests through one MessageChannel and get an ExtensionResponse back. The
handlers call the same tailoring pipeline and store as the web routes.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger
from pydantic import Field

from .exceptions import ResumeMatchError
from .extractor import job_from_text
from .job_page import extract_job_from_html, is_job_site
from .models import ApplicationRecord, ApplicationStatus, CamelModel, ResumeData
from .storage import ApplicationStore
from .tailor import ResumeTailor


class MessageType(str, Enum):
    GET_JOB_DESCRIPTION = "GET_JOB_DESCRIPTION"
    EXTRACT_JOB_DATA = "EXTRACT_JOB_DATA"
    SAVE_APPLICATION = "SAVE_APPLICATION"
    GET_USER_RESUME = "GET_USER_RESUME"
    TAILOR_RESUME = "TAILOR_RESUME"
    UPDATE_STATUS = "UPDATE_STATUS"


class ExtensionMessage(CamelModel):
    # Plain string so unknown types reach dispatch instead of failing validation
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ExtensionResponse(CamelModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    retryable: bool = False


Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class MessageChannel:
    """Routes each message type to one handler."""

    def __init__(self):
        self.handlers: Dict[MessageType, Handler] = {}

    def register(self, message_type: MessageType, handler: Handler) -> None:
        self.handlers[MessageType(message_type)] = handler

    async def dispatch(self, message: ExtensionMessage) -> ExtensionResponse:
        """Run the handler for a message. User-facing errors become failed responses."""
        try:
            message_type = MessageType(message.type)
        except ValueError:
            return ExtensionResponse(success=False, error=f"Unsupported message type: {message.type}")

        handler = self.handlers.get(message_type)
        if handler is None:
            return ExtensionResponse(success=False, error=f"Unsupported message type: {message_type.value}")

        try:
            data = await handler(message.data)
        except ResumeMatchError as e:
            logger.warning(f"{message_type.value} failed: {e}")
            return ExtensionResponse(success=False, error=str(e), retryable=e.retryable)
        except ValueError as e:
            logger.warning(f"{message_type.value} rejected: {e}")
            return ExtensionResponse(success=False, error=str(e))

        return ExtensionResponse(success=True, data=data)


def _require(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value in (None, ""):
        raise ValueError(f"'{key}' is required")
    return value


def build_extension_channel(
    store: ApplicationStore,
    tailor_factory: Callable[[], ResumeTailor],
) -> MessageChannel:
    """Channel wired to the application store and a tailoring pipeline."""
    channel = MessageChannel()

    async def extract_job_data(data: Dict[str, Any]) -> Dict[str, Any]:
        url = data.get("url")
        job = None
        if data.get("html"):
            job = extract_job_from_html(data["html"], url)
        if job is None and data.get("text"):
            job = job_from_text(data["text"], url=url)
        return {
            "jobDescription": job.to_json_dict() if job else None,
            "isJobSite": is_job_site(url),
        }

    async def get_job_description(data: Dict[str, Any]) -> Dict[str, Any]:
        job = await tailor_factory().extract_job_requirements(_require(data, "text"))
        return job.to_json_dict()

    async def get_user_resume(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        resume = store.get_resume(_require(data, "userId"))
        return resume.to_json_dict() if resume else None

    async def save_application(data: Dict[str, Any]) -> Dict[str, Any]:
        record = ApplicationRecord.model_validate(data)
        return store.save(record).to_json_dict()

    async def update_status(data: Dict[str, Any]) -> Dict[str, Any]:
        status = ApplicationStatus(_require(data, "status"))
        return store.update_status(_require(data, "applicationId"), status).to_json_dict()

    async def tailor_resume(data: Dict[str, Any]) -> Dict[str, Any]:
        job_text = _require(data, "jobDescription")
        if data.get("resume"):
            master = ResumeData.model_validate(data["resume"])
        else:
            master = store.get_resume(_require(data, "userId"))
            if master is None:
                raise ValueError("No master resume found. Please upload one first.")
        result = await tailor_factory().tailor(master, job_text)
        return result.to_dict()

    channel.register(MessageType.EXTRACT_JOB_DATA, extract_job_data)
    channel.register(MessageType.GET_JOB_DESCRIPTION, get_job_description)
    channel.register(MessageType.GET_USER_RESUME, get_user_resume)
    channel.register(MessageType.SAVE_APPLICATION, save_application)
    channel.register(MessageType.UPDATE_STATUS, update_status)
    channel.register(MessageType.TAILOR_RESUME, tailor_resume)

    return channel
