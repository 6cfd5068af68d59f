from fastapi import APIRouter, Depends, Request

from chatbot_helper import ChatbotClient
from schemas import ChatRequest

chat_router = APIRouter(prefix="/api", tags=["Chat"])


def get_chatbot(request: Request) -> ChatbotClient:
    return request.app.state.chatbot


@chat_router.post("/chat")
async def chat(payload: ChatRequest, chatbot: ChatbotClient = Depends(get_chatbot)):
    return {"reply": await chatbot.get_reply(payload.message)}
