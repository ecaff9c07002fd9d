"""Tests for the browser extension message channel."""

import asyncio
import json

import pytest

from resumematch.exceptions import ServiceUnavailable
from resumematch.messages import (
    ExtensionMessage,
    ExtensionResponse,
    MessageChannel,
    MessageType,
    build_extension_channel,
)
from resumematch.storage import ApplicationStore, InMemoryStore
from resumematch.tailor import ResumeTailor


def send(channel: MessageChannel, type_: str, data=None) -> ExtensionResponse:
    return asyncio.run(channel.dispatch(ExtensionMessage(type=type_, data=data or {})))


@pytest.fixture
def store() -> ApplicationStore:
    return ApplicationStore(InMemoryStore())


@pytest.fixture
def make_channel(store, scripted_client):
    def make(*replies):
        client = scripted_client(*replies)
        return build_extension_channel(store, lambda: ResumeTailor(client))
    return make


@pytest.mark.unit
class TestMessageChannel:

    def test_unknown_type_fails_without_raising(self):
        response = send(MessageChannel(), "OPEN_POPUP")
        assert not response.success
        assert response.error == "Unsupported message type: OPEN_POPUP"

    def test_known_type_without_handler(self):
        response = send(MessageChannel(), MessageType.TAILOR_RESUME.value)
        assert not response.success

    def test_unexpected_errors_propagate(self):
        channel = MessageChannel()

        async def broken(data):
            raise RuntimeError("bug")

        channel.register(MessageType.EXTRACT_JOB_DATA, broken)
        with pytest.raises(RuntimeError):
            send(channel, "EXTRACT_JOB_DATA")

    def test_response_serialises_camel_case(self):
        response = ExtensionResponse(success=True, data={"a": 1})
        assert response.to_json_dict() == {"success": True, "data": {"a": 1}, "error": None, "retryable": False}


@pytest.mark.unit
class TestExtensionHandlers:

    def test_extract_job_data_from_text(self, make_channel, job_posting):
        response = send(make_channel(), "EXTRACT_JOB_DATA",
                        {"text": job_posting, "url": "https://www.indeed.com/viewjob?jk=1"})

        assert response.success
        assert response.data["isJobSite"] is True
        assert "docker" in response.data["jobDescription"]["skills"]

    def test_extract_job_data_nothing_found(self, make_channel):
        response = send(make_channel(), "EXTRACT_JOB_DATA", {"html": "<p>hi</p>"})
        assert response.success
        assert response.data["jobDescription"] is None

    def test_get_job_description_uses_model(self, make_channel):
        reply = json.dumps({"title": "SRE", "company": "Globex", "skills": ["linux"]})
        response = send(make_channel(reply), "GET_JOB_DESCRIPTION", {"text": "SRE at Globex"})

        assert response.success
        assert response.data["title"] == "SRE"
        assert response.data["description"] == "SRE at Globex"

    def test_missing_field(self, make_channel):
        response = send(make_channel(), "GET_JOB_DESCRIPTION", {})
        assert not response.success
        assert "'text' is required" in response.error

    def test_get_user_resume(self, make_channel, store, complete_resume):
        store.save_resume("user_1", complete_resume)
        response = send(make_channel(), "GET_USER_RESUME", {"userId": "user_1"})
        assert response.data["contact"]["name"] == "Jane Doe"

    def test_get_resume_unknown_user(self, make_channel):
        response = send(make_channel(), "GET_USER_RESUME", {"userId": "ghost"})
        assert not response.success
        assert not response.retryable

    def test_save_application_and_update_status(self, make_channel, store, complete_resume, backend_job):
        channel = make_channel()
        record = {
            "userId": "user_1",
            "jobTitle": backend_job.title,
            "company": backend_job.company,
            "jobDescription": backend_job.to_json_dict(),
            "originalResume": complete_resume.to_json_dict(),
            "tailoredResume": complete_resume.to_json_dict(),
            "atsScore": 70,
            "matchPercentage": 67,
        }

        saved = send(channel, "SAVE_APPLICATION", record)
        assert saved.success
        app_id = saved.data["id"]

        updated = send(channel, "UPDATE_STATUS", {"applicationId": app_id, "status": "interview"})
        assert updated.success
        assert updated.data["status"] == "interview"
        assert store.get_application(app_id).status.value == "interview"

    def test_save_application_invalid(self, make_channel):
        response = send(make_channel(), "SAVE_APPLICATION", {"userId": "user_1"})
        assert not response.success

    def test_tailor_resume_from_stored_master(self, make_channel, store, complete_resume):
        store.save_resume("user_1", complete_resume)
        channel = make_channel("not json", "not json", "not json")

        response = send(channel, "TAILOR_RESUME", {"userId": "user_1", "jobDescription": "Python role"})

        assert response.success
        assert response.data["degradedSteps"] == [
            "extract_job_requirements",
            "tailor_resume_for_job",
            "calculate_ats_score",
        ]

    def test_tailor_resume_service_down_is_retryable(self, make_channel, complete_resume):
        channel = make_channel(ServiceUnavailable("Language model service is unreachable"))

        response = send(channel, "TAILOR_RESUME", {
            "resume": complete_resume.to_json_dict(),
            "jobDescription": "Python role",
        })

        assert not response.success
        assert response.retryable
        assert response.error == "Language model service is unreachable"

    def test_tailor_resume_incomplete_resume(self, make_channel):
        response = send(make_channel(), "TAILOR_RESUME", {
            "resume": {"contact": {"name": "Jane"}},
            "jobDescription": "Python role",
        })
        assert not response.success
        assert response.error.startswith("Resume is incomplete")
