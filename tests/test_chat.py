import pandas as pd
import pytest
from google.api_core import exceptions as google_exceptions

from talent_core.chat import (
    ERROR_TEXT,
    ChatAnswer,
    GeminiQueryService,
    QueryServiceError,
    QuotaExceededError,
    answer_question,
    build_chat_context,
    is_quota_error,
    parse_answer,
    retry_delay_seconds,
    to_csv_text,
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, key, replies):
        self.key = key
        self.replies = replies
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies[self.key]
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


def make_service(keys, replies):
    built = []

    def factory(key, model_name):
        model = FakeModel(key, replies)
        built.append(model)
        return model

    return GeminiQueryService(api_keys=keys, model_name="test-model", model_factory=factory), built


def test_to_csv_text_quotes_special_values():
    df = pd.DataFrame([{"name": 'John, "JJ" Doe', "city": "Pune"}, {"name": "Asha", "city": None}])
    assert to_csv_text(df) == 'name,city\n"John, ""JJ"" Doe",Pune\nAsha,'


def test_build_chat_context(data_ctx):
    text = build_chat_context(data_ctx["candidates"])
    lines = text.split("\n")
    assert lines[0] == "Dataset Description: Candidate data (CSV)."
    assert lines[1].startswith("Columns: Employee ID, Candidate Name, Location")
    assert lines[2] == "Total Records: 4"
    assert lines[3] == ""
    assert lines[4] == "CSV DATA:"
    assert "aadhaar" not in text
    assert "_facet_" not in text
    assert '"John, ""JJ"" Doe"' in text


def test_build_chat_context_empty():
    assert build_chat_context(pd.DataFrame()) == "No data available."


def test_parse_answer_json_in_fence():
    raw = '```json\n{"text": "Trend is up", "type": "sentiment", "series": [{"name": "Jan", "value": 60}, {"name": "Feb", "sentiment": "70"}, {"bad": 1}]}\n```'
    answer = parse_answer(raw)
    assert answer == ChatAnswer(
        text="Trend is up",
        kind="sentiment",
        series=[{"name": "Jan", "value": 60.0}, {"name": "Feb", "value": 70.0}],
    )


def test_parse_answer_plain_text_and_bad_kind():
    assert parse_answer("There are 4 candidates.") == ChatAnswer(text="There are 4 candidates.")
    assert parse_answer('{"text": "ok", "type": "poem"}').kind == "text"
    assert parse_answer("{not json}").text == "{not json}"


def test_retry_delay_seconds():
    assert retry_delay_seconds("Quota exceeded. Please retry in 12.4s.") == 13
    assert retry_delay_seconds("Quota exceeded.") == 60


def test_is_quota_error():
    assert is_quota_error(google_exceptions.ResourceExhausted("quota"))
    assert is_quota_error(RuntimeError("HTTP 429 Too Many Requests"))
    assert not is_quota_error(RuntimeError("boom"))


def test_ask_returns_parsed_answer():
    service, built = make_service(["k1"], {"k1": '{"text": "4 candidates", "type": "text"}'})
    answer = service.ask("ctx", "How many?")
    assert answer.text == "4 candidates"
    assert 'USER QUESTION: "How many?"' in built[0].prompts[0]


def test_ask_rotates_key_on_quota_error():
    replies = {"k1": google_exceptions.ResourceExhausted("quota"), "k2": '{"text": "done"}'}
    service, built = make_service(["k1", "k2"], replies)
    assert service.ask("ctx", "q").text == "done"
    assert [m.key for m in built] == ["k1", "k2"]
    assert service.key_index == 1


def test_ask_raises_when_all_keys_exhausted():
    exhausted = google_exceptions.ResourceExhausted("Quota exceeded, retry in 7s")
    service, built = make_service(["k1", "k2"], {"k1": exhausted, "k2": exhausted})
    with pytest.raises(QuotaExceededError) as err:
        service.ask("ctx", "q")
    assert err.value.retry_after == 7
    assert len(built) == 2


def test_ask_other_errors_return_error_text():
    service, _ = make_service(["k1"], {"k1": RuntimeError("network down")})
    assert service.ask("ctx", "q") == ChatAnswer(text=ERROR_TEXT)


def test_unconfigured_service_raises():
    service = GeminiQueryService(api_keys=[])
    assert not service.configured
    with pytest.raises(QueryServiceError):
        service.ask("ctx", "q")


def test_answer_question_blank(data_ctx):
    service, built = make_service(["k1"], {"k1": "unused"})
    answer = answer_question(data_ctx["candidates"], "   ", service)
    assert "ask a question" in answer.text
    assert built == []
