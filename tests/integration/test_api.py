"""End-to-end tests of the HTTP application with an in-memory store and a scripted model."""

import json
from io import BytesIO

import pytest
from docx import Document
from fastapi.testclient import TestClient

from resumematch.config import Settings
from resumematch.exceptions import ServiceUnavailable
from resumematch.storage import ApplicationStore, InMemoryStore, JsonFileStore
from resumematch.tailor import ResumeTailor
import web.app as web_app
from web.app import app, get_settings, get_store, get_tailor_factory

JOB_REPLY = json.dumps({"title": "Backend Engineer", "company": "Initech", "skills": ["python", "aws"]})
TAILOR_REPLY = json.dumps({"tailoredSummary": "Python engineer for Initech.", "tailoredExperience": []})
SCORE_REPLY = json.dumps({"score": 77, "matchPercentage": 50})


@pytest.fixture
def replies():
    """Replies the scripted model returns, in order; tests append to it."""
    return []


@pytest.fixture
def client(replies, scripted_client):
    store = ApplicationStore(InMemoryStore())
    model = scripted_client()
    model.replies = replies

    app.dependency_overrides[get_settings] = lambda: Settings(anthropic_api_key="")
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_tailor_factory] = lambda: (lambda: ResumeTailor(model))
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def application_payload(complete_resume, backend_job):
    return {
        "userId": "user_1",
        "jobTitle": backend_job.title,
        "company": backend_job.company,
        "jobUrl": "https://jobs.example.com/1",
        "jobDescription": backend_job.to_json_dict(),
        "originalResume": complete_resume.to_json_dict(),
        "tailoredResume": complete_resume.to_json_dict(),
        "atsScore": 72,
        "matchPercentage": 67,
    }


@pytest.mark.integration
class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["ai_enabled"] is False


@pytest.mark.integration
class TestUsers:

    def test_create_user(self, client):
        response = client.post("/api/users", json={"email": "jane@example.com"})
        assert response.status_code == 201
        assert response.json()["id"].startswith("user_")

    def test_resume_of_unknown_user(self, client):
        assert client.get("/api/users/ghost/resume").status_code == 404

    def test_save_and_get_resume(self, client, complete_resume):
        response = client.post("/api/users/user_1/resume", json=complete_resume.to_json_dict())
        assert response.status_code == 200
        assert response.json()["errors"] == []

        resume = client.get("/api/users/user_1/resume").json()["resume"]
        assert resume["contact"]["name"] == "Jane Doe"


@pytest.mark.integration
class TestApplications:

    def test_create_and_list(self, client, application_payload):
        created = client.post("/api/applications", json=application_payload)
        assert created.status_code == 201
        app_id = created.json()["id"]
        assert created.json()["status"] == "applied"

        listed = client.get("/api/applications", params={"userId": "user_1"})
        assert listed.status_code == 200
        assert [a["id"] for a in listed.json()] == [app_id]

    def test_missing_field_is_400(self, client, application_payload):
        del application_payload["company"]
        assert client.post("/api/applications", json=application_payload).status_code == 400

    def test_list_requires_user_id(self, client):
        assert client.get("/api/applications").status_code == 400

    def test_update_status(self, client, application_payload):
        app_id = client.post("/api/applications", json=application_payload).json()["id"]

        response = client.patch(f"/api/applications/{app_id}", json={"status": "offer"})

        assert response.status_code == 200
        assert response.json()["status"] == "offer"
        assert response.json()["updatedAt"] is not None
        assert response.json()["company"] == application_payload["company"]

    def test_update_unknown_application(self, client):
        response = client.patch("/api/applications/app_missing", json={"status": "offer"})
        assert response.status_code == 404

    def test_invalid_status_is_400(self, client, application_payload):
        app_id = client.post("/api/applications", json=application_payload).json()["id"]
        response = client.patch(f"/api/applications/{app_id}", json={"status": "ghosted"})
        assert response.status_code == 400

    def test_corrupt_store_is_503(self, client, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        app.dependency_overrides[get_store] = lambda: ApplicationStore(JsonFileStore(path))

        response = client.get("/api/applications", params={"userId": "u1"})

        assert response.status_code == 503
        assert response.json()["retryable"] is True


@pytest.mark.integration
class TestTailoring:

    def test_tailor_with_resume(self, client, replies, complete_resume):
        replies.extend([JOB_REPLY, TAILOR_REPLY, SCORE_REPLY])

        response = client.post("/api/tailor", json={
            "resume": complete_resume.to_json_dict(),
            "jobDescription": "Backend Engineer at Initech. Python and AWS.",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["tailoredResume"]["summary"] == "Python engineer for Initech."
        assert body["atsScore"]["score"] == 77
        assert body["degradedSteps"] == []
        assert body["localScore"]["keywordMatches"] == ["python"]

    def test_tailor_stored_master(self, client, replies, complete_resume):
        replies.extend(["?", "?", "?"])
        client.post("/api/users/user_1/resume", json=complete_resume.to_json_dict())

        response = client.post("/api/tailor", json={"userId": "user_1", "jobDescription": "Anything"})

        assert response.status_code == 200
        assert len(response.json()["degradedSteps"]) == 3

    def test_tailor_incomplete_resume(self, client, replies):
        response = client.post("/api/tailor", json={
            "resume": {"contact": {"name": "Jane"}},
            "jobDescription": "Python role",
        })
        assert response.status_code == 400
        assert "Missing email" in response.json()["errors"]

    def test_tailor_needs_resume_or_user(self, client):
        response = client.post("/api/tailor", json={"jobDescription": "Python role"})
        assert response.status_code == 400

    def test_service_unavailable_is_503(self, client, replies, complete_resume):
        replies.append(ServiceUnavailable("Language model service is unreachable"))
        response = client.post("/api/tailor", json={
            "resume": complete_resume.to_json_dict(),
            "jobDescription": "Python role",
        })
        assert response.status_code == 503

    def test_stream(self, client, replies, complete_resume):
        replies.extend([JOB_REPLY, TAILOR_REPLY, SCORE_REPLY])

        response = client.post("/api/tailor/stream", json={
            "resume": complete_resume.to_json_dict(),
            "jobDescription": "Backend Engineer at Initech.",
        })

        assert response.status_code == 200
        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines() if line.startswith("data: ")
        ]
        assert [e["step"] for e in events] == ["analyzing", "tailoring", "scoring", "complete", "result"]
        assert events[-1]["atsScore"]["score"] == 77


@pytest.mark.integration
class TestScoringAndExtraction:

    def test_analyze_job(self, client, job_posting):
        response = client.post("/api/analyze-job", data={"job_description": job_posting, "company": "Initech"})
        assert response.status_code == 200
        body = response.json()
        assert body["company"] == "Initech"
        assert body["title"] == "Unknown Position"
        assert "kubernetes" in body["skills"]

    def test_ats_score_from_text(self, client, complete_resume):
        response = client.post("/api/ats-score", json={
            "resume": complete_resume.to_json_dict(),
            "jobDescription": "Requirements:\n- Docker in production\nAlso Python.",
        })
        assert response.status_code == 200
        assert "python" in response.json()["keywordMatches"]

    def test_server_value_error_is_500(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise ValueError("could not convert string to float")

        monkeypatch.setattr(web_app, "job_from_text", broken)

        response = client.post("/api/analyze-job", data={"job_description": "Python role"})
        assert response.status_code == 500

    def test_ats_score_requires_job(self, client, complete_resume):
        response = client.post("/api/ats-score", json={"resume": complete_resume.to_json_dict()})
        assert response.status_code == 400

    def test_ats_tips(self, client):
        tips = client.get("/api/ats-tips").json()["tips"]
        assert "Keep to 1-2 pages" in tips

    def test_import_url_failure(self, client, monkeypatch):
        async def failing_fetch(url):
            raise ServiceUnavailable("Failed to fetch URL: connection refused")

        monkeypatch.setattr(web_app, "fetch_job_posting", failing_fetch)

        response = client.post("/api/import-url", json={"url": "https://jobs.example.com/1"})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Failed to fetch URL")


@pytest.mark.integration
class TestFiles:

    def test_parse_text_resume(self, client):
        content = b"Jane Doe\njane@example.com\n\nSkills\nPython, SQL\n"
        response = client.post("/api/resume/parse", files={"file": ("resume.txt", content, "text/plain")})

        assert response.status_code == 200
        body = response.json()
        assert body["resume"]["skills"] == ["Python", "SQL"]
        assert body["isValid"] is False
        assert "Missing phone" in body["errors"]

    def test_parse_unsupported_file(self, client):
        response = client.post("/api/resume/parse", files={"file": ("resume.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 400

    def test_parse_invalid_json_resume(self, client):
        response = client.post("/api/resume/parse", files={"file": ("resume.json", b"{\"skills\": 5}", "application/json")})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid resume JSON")

    def test_export_docx(self, client, complete_resume):
        response = client.post("/api/export/docx", json={
            "resume": complete_resume.to_json_dict(),
            "company": "Initech",
            "jobTitle": "Backend Engineer",
        })

        assert response.status_code == 200
        assert "Resume_Initech_Backend_Engineer_" in response.headers["content-disposition"]
        document = Document(BytesIO(response.content))
        assert [p.text for p in document.paragraphs if p.text][0] == "Jane Doe"


@pytest.mark.integration
class TestExtensionEndpoint:

    def test_unknown_message_type(self, client):
        response = client.post("/api/extension/message", json={"type": "OPEN_POPUP", "data": {}})
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_extract_job_data(self, client, job_posting):
        response = client.post("/api/extension/message", json={
            "type": "EXTRACT_JOB_DATA",
            "data": {"text": job_posting},
        })
        assert response.json()["success"] is True
        assert "python" in response.json()["data"]["jobDescription"]["skills"]
