"""Local demo routes: ping, signup check and a canned chat responder.

None of these reach the workflow backend; they let the UI be exercised
without it.
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..errors import FormValidationError
from ..schemas.chat import (
    DemoChatRequest,
    DemoChatResponse,
    SignupRequest,
    SignupResponse,
    SignupUser,
)
from ..validation import parse_age, validate_signup

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])

# First matching keyword group wins.
DEMO_REPLIES = [
    (("hello", "hi", "hey"),
     "Hello! 👋 How can I assist you today? Feel free to ask me anything!"),
    (("how are you", "how do you feel"),
     "I'm doing great, thanks for asking! I'm here and ready to help with whatever you need. "
     "What would you like to discuss?"),
    (("help", "can you"),
     "Of course! I'd be happy to help. I can assist you with various tasks like answering questions, "
     "writing, coding, brainstorming, and much more. What do you need help with?"),
    (("python", "javascript", "code", "programming"),
     "Great! I'm well-versed in programming. Whether you need help with Python, JavaScript, or other "
     "languages, I can assist with explanations, debugging, or writing code. What's your programming question?"),
    (("write", "essay", "story"),
     "I'd love to help with your writing! Whether it's an essay, story, or creative piece, I can help you "
     "brainstorm, draft, or refine your ideas. What would you like to write about?"),
    (("joke", "funny", "laugh"),
     "Why did the AI go to school? To improve its learning model! 😄 Got any other requests? "
     "I can help with humor or anything else you need."),
    (("thank", "thanks", "appreciate"),
     "You're welcome! I'm happy to help. Don't hesitate to ask if you need anything else!"),
    (("what", "tell me about", "explain"),
     "I'd be happy to explain that! I can provide information on almost any topic. "
     "Could you be more specific about what you'd like to know?"),
    (("bye", "goodbye"),
     "Goodbye! It was great chatting with you. Feel free to come back anytime if you need help. "
     "Have a wonderful day! 👋"),
]


def demo_reply(message: str) -> str:
    lower = message.lower()
    for keywords, reply in DEMO_REPLIES:
        if any(k in lower for k in keywords):
            return reply
    return (
        f'That\'s an interesting question: "{message}". I can help you with that! Could you provide a bit '
        "more detail so I can give you the best answer? Feel free to ask anything - I'm here to help with "
        "information, creative tasks, coding, problem-solving, and much more."
    )


@router.get("/ping")
async def ping(settings: Settings = Depends(get_settings)):
    return {"message": settings.ping_message}


@router.post("/signup")
async def signup(req: SignupRequest):
    form = req.model_dump()
    try:
        validate_signup(form, check_email=False, match_before_length=True)
    except FormValidationError as e:
        if str(e) == "Please fill in all fields":
            return JSONResponse(status_code=400, content={"error": "Missing required fields"})
        return JSONResponse(status_code=400, content={"error": str(e)})

    user = SignupUser(name=req.name, email=req.email, age=parse_age(req.age), gender=req.gender)
    logger.info("[signup] demo account for %s", req.email)
    return SignupResponse(user=user)


@router.post("/chat")
async def chat(req: DemoChatRequest):
    if not req.message or not req.conversationId:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})
    return DemoChatResponse(conversationId=req.conversationId, response=demo_reply(req.message))
