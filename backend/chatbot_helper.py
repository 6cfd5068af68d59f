import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are StudyHub AI Assistant, a helpful AI for an educational platform that "
    "connects students and tutors. Help users with study sessions, tutoring, course "
    "materials, bookings, payments, and educational guidance. Be friendly, "
    "informative, and concise."
)
FALLBACK_REPLY = "I'm sorry, I'm having trouble responding right now. Please try again later."


class ChatbotError(Exception):
    pass


class ChatbotClient:
    """OpenAI-compatible chat-completions wrapper that never raises to callers."""

    def __init__(
        self,
        api_key: str,
        model: str = "deepseek/deepseek-r1",
        base_url: str = "https://openrouter.ai/api/v1",
        max_tokens: int = 200,
        timeout_seconds: float = 30.0,
        site_url: str = "",
        site_title: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.site_url = site_url
        self.site_title = site_title
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_title:
            headers["X-Title"] = self.site_title
        return headers

    async def _complete(self, message: str) -> str:
        if not self.api_key:
            raise ChatbotError("Chatbot API key is not configured")

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
        }
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        content = data.get("choices", [{}])[0].get("message", {}).get("content", "")
        if not isinstance(content, str) or not content.strip():
            raise ChatbotError("Empty chatbot response")
        return content

    async def get_reply(self, message: str) -> str:
        try:
            return await self._complete(message)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            body = e.response.text[:300] if e.response is not None else str(e)
            logger.warning("Chatbot status error HTTP %s: %s", status, body)
        except Exception as e:
            logger.warning("Chatbot error: %s", e)
        return FALLBACK_REPLY


def build_chatbot_client(
    api_key: Optional[str],
    model: str,
    base_url: str,
    max_tokens: int,
    timeout_seconds: float,
    site_url: str = "",
    site_title: str = "",
) -> ChatbotClient:
    if not api_key:
        logger.warning("OPENROUTER_API_KEY is not set; chatbot will answer with the fallback reply")
    return ChatbotClient(
        api_key=api_key or "",
        model=model,
        base_url=base_url,
        max_tokens=max_tokens,
        timeout_seconds=timeout_seconds,
        site_url=site_url,
        site_title=site_title,
    )
