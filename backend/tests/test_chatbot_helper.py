import asyncio
import json
import unittest

import support

import httpx
from fastapi.testclient import TestClient

from chatbot_helper import FALLBACK_REPLY, SYSTEM_PROMPT, ChatbotClient


def _chatbot(handler, api_key="or-key"):
    return ChatbotClient(
        api_key=api_key,
        site_url="https://studyhub.example.com/",
        site_title="StudyHub",
        transport=httpx.MockTransport(handler),
    )


class TestChatbotClient(unittest.TestCase):
    def test_sends_system_prompt_and_budget(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "Try the algebra session."}}]})

        reply = asyncio.run(_chatbot(handler).get_reply("What should I study?"))

        self.assertEqual(reply, "Try the algebra session.")
        self.assertEqual(seen["url"], "https://openrouter.ai/api/v1/chat/completions")
        self.assertEqual(seen["headers"]["Authorization"], "Bearer or-key")
        self.assertEqual(seen["headers"]["HTTP-Referer"], "https://studyhub.example.com/")
        self.assertEqual(seen["headers"]["X-Title"], "StudyHub")
        self.assertEqual(seen["body"]["model"], "deepseek/deepseek-r1")
        self.assertEqual(seen["body"]["max_tokens"], 200)
        self.assertEqual(
            seen["body"]["messages"],
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": "What should I study?"},
            ],
        )

    def test_http_error_returns_apology(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "quota exceeded"}})

        self.assertEqual(asyncio.run(_chatbot(handler).get_reply("hi")), FALLBACK_REPLY)

    def test_network_error_returns_apology(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out")

        self.assertEqual(asyncio.run(_chatbot(handler).get_reply("hi")), FALLBACK_REPLY)

    def test_malformed_body_returns_apology(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        self.assertEqual(asyncio.run(_chatbot(handler).get_reply("hi")), FALLBACK_REPLY)

    def test_missing_key_returns_apology_without_calling_out(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        self.assertEqual(asyncio.run(_chatbot(handler, api_key="").get_reply("hi")), FALLBACK_REPLY)
        self.assertEqual(calls, [])

    def test_fallback_text_is_fixed(self):
        self.assertEqual(
            FALLBACK_REPLY,
            "I'm sorry, I'm having trouble responding right now. Please try again later.",
        )


class TestChatRoute(unittest.TestCase):
    def test_failure_still_returns_200(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        app, _ = support.build_app(chatbot=_chatbot(handler))
        response = TestClient(app).post("/api/chat", json={"message": "hello"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"reply": FALLBACK_REPLY})

    def test_forwards_message(self):
        chatbot = support.RecordingChatbot(reply="Hi there")
        app, _ = support.build_app(chatbot=chatbot)
        response = TestClient(app).post("/api/chat", json={"message": "hello"})
        self.assertEqual(response.json(), {"reply": "Hi there"})
        self.assertEqual(chatbot.messages, ["hello"])


if __name__ == "__main__":
    unittest.main()
