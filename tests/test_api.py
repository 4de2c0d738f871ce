import pytest
from fastapi.testclient import TestClient

from talent_api import main
from talent_core.chat import ChatAnswer, QueryServiceError, QuotaExceededError


class StubService:
    def __init__(self, result):
        self.result = result
        self.questions = []

    @property
    def configured(self):
        return True

    def ask(self, context, question):
        self.questions.append(question)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def client(data_ctx, monkeypatch):
    monkeypatch.setattr(main, "load_dashboard_data", lambda: data_ctx)
    return TestClient(main.app)


def use_service(monkeypatch, result):
    service = StubService(result)
    monkeypatch.setattr(main, "get_query_service", lambda: service)
    return service


def test_meta_facets(client):
    body = client.get("/meta/facets").json()
    assert body["files"] == ["candidates.xlsx"]
    assert body["labels"]["vertical"] == "Industry"
    assert body["facets"]["client"][0] == {"name": "Acme", "count": 2}


def test_meta_facet_search(client):
    body = client.get("/meta/facets/Location", params={"q": "gur"}).json()
    assert body == {"facet": "location", "options": [{"name": "Gurgaon", "count": 1}]}


def test_meta_facet_unknown(client):
    resp = client.get("/meta/facets/salary")
    assert resp.status_code == 404


def test_overview(client):
    resp = client.post("/overview", json={"selected_clients": ["Acme"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["kpis"]["total_candidates"] == 2
    assert body["facets"]["client"]["badge"] == "1 Selected"
    assert body["filters"]["selected_clients"] == ["Acme"]


def test_candidates_page(client):
    resp = client.post("/candidates", params={"page": 1, "page_size": 2}, json={})
    body = resp.json()
    assert body["total"] == 4
    assert body["total_pages"] == 2
    assert [r["row_id"] for r in body["rows"]] == [0, 1]


def test_candidate_profile(client):
    assert client.get("/candidates/1").json()["name"] == "Ravi Kumar"
    assert client.get("/candidates/99").status_code == 404


def test_client_details(client):
    body = client.get("/clients/Beta").json()
    assert body["count"] == 1


def test_debug(client):
    body = client.post("/debug", json={}).json()
    assert body["empty_skill_rows"] == 1


def test_overview_error_is_json_500(monkeypatch):
    def boom():
        raise RuntimeError("disk gone")

    monkeypatch.setattr(main, "load_dashboard_data", boom)
    resp = TestClient(main.app).post("/overview", json={})
    assert resp.status_code == 500
    assert resp.json() == {"error": "disk gone", "type": "RuntimeError"}


def test_chat_answer(client, monkeypatch):
    service = use_service(monkeypatch, ChatAnswer(text="4 candidates"))
    body = client.post("/chat", json={"question": "How many?"}).json()
    assert body == {"text": "4 candidates", "kind": "text", "series": [], "retry_after": None}
    assert service.questions == ["How many?"]


def test_chat_rate_limited(client, monkeypatch):
    use_service(monkeypatch, QuotaExceededError("quota", retry_after=30))
    resp = client.post("/chat", json={"question": "q"})
    assert resp.status_code == 429
    assert resp.json()["retry_after"] == 30


def test_chat_unconfigured(client, monkeypatch):
    use_service(monkeypatch, QueryServiceError("Gemini is not configured."))
    assert client.post("/chat", json={"question": "q"}).status_code == 503
