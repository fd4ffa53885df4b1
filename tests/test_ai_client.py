from unittest.mock import MagicMock

import pytest
import requests

from ai_client import AiDecodeError, GeminiClient, decode_json_object, strip_code_fence
from errors import UpstreamUnavailable
from schemas import AiVerdict, ClueAnalysis


@pytest.mark.parametrize("raw", [
    '{"a": 1}',
    '```json\n{"a": 1}\n```',
    '```JSON{"a": 1}```',
    '```\n{"a": 1}\n```',
    '  {"a": 1}  \n',
])
def test_strip_code_fence(raw):
    assert strip_code_fence(raw) == '{"a": 1}'


class TestDecode:

    def test_valid_clue(self):
        text = '```json\n{"fact": "f", "clue": "c", "winning_comment_id": "x", "index": 2, "reasoning": "r"}\n```'
        analysis = decode_json_object(text, ClueAnalysis)
        assert analysis.index == 2
        assert analysis.clue == "c"

    @pytest.mark.parametrize("text", [
        "not json at all",
        "[1, 2, 3]",
        '{"fact": "f", "clue": "c", "index": "third"}',
        '{"clue": "c", "index": 0}',
        '{"fact": "", "clue": "c", "index": 0}',
        '{"fact": "f", "clue": "c", "index": true}',
        '{"fact": "f", "clue": "c", "index": "2"}',
        '{"fact": "f", "clue": "c", "index": 1.5}',
    ])
    def test_rejects_bad_clue_answers(self, text):
        with pytest.raises(AiDecodeError):
            decode_json_object(text, ClueAnalysis)

    def test_rejects_out_of_range_confidence(self):
        with pytest.raises(AiDecodeError):
            decode_json_object('{"isCorrect": true, "confidence": 1.5}', AiVerdict)


class TestGeminiClient:

    def test_unconfigured_client_is_unavailable(self):
        with pytest.raises(UpstreamUnavailable):
            GeminiClient().complete(["hello"])

    def test_returns_first_candidate_text(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {
            "candidates": [{"content": {"parts": [{"text": "answer"}]}}]
        }
        client = GeminiClient("key", "https://ai.example/generate", session=session)

        assert client.complete(["system", "prompt"], max_tokens=123, temperature=0.3) == "answer"

        _, kwargs = session.post.call_args
        assert kwargs["headers"]["x-goog-api-key"] == "key"
        assert [p["text"] for p in kwargs["json"]["contents"][0]["parts"]] == ["system", "prompt"]
        assert kwargs["json"]["generationConfig"] == {"maxOutputTokens": 123, "temperature": 0.3}

    def test_http_error_is_unavailable(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("503")
        client = GeminiClient("key", "https://ai.example/generate", session=session)
        with pytest.raises(UpstreamUnavailable):
            client.complete(["prompt"])

    def test_empty_candidates_is_unavailable(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"candidates": []}
        client = GeminiClient("key", "https://ai.example/generate", session=session)
        with pytest.raises(UpstreamUnavailable):
            client.complete(["prompt"])
