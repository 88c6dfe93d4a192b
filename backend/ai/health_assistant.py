import logging

from ai.providers import get_provider
from config import settings
from db.models import User

logger = logging.getLogger(__name__)

CHAT_FALLBACK_REPLY = "Please describe your health concern and I'll provide focused guidance."
CHAT_EMPTY_REPLY = "Could you describe your concern more specifically?"
IMAGE_FALLBACK_ANALYSIS = (
    "Image analysis is temporarily unavailable. Please describe your concern in text instead.\n\n"
    "Disclaimer: This is NOT a medical diagnosis."
)
IMAGE_EMPTY_ANALYSIS = "Unable to analyze this image. Please try with a clearer photo."
IMAGE_DEFAULT_CONTEXT = "Please analyze this image for any health concerns."

CHAT_SYSTEM_PROMPT = """You are a precise preventive healthcare assistant.

RESPONSE STRUCTURE:
1. DIRECT ANSWER to the main problem first (1-2 sentences max)
2. Secondary guidance ONLY if directly relevant
3. End with "Consult a doctor if symptoms persist" ONLY for concerning symptoms

STRICT RULES:
- Problem-first approach: Address the core issue immediately
- NO generic wellness advice unless specifically asked
- NEVER diagnose or prescribe medications
- Keep total response under 50 words unless complex question
- Be warm but efficient

USER MEDICAL CONTEXT:
{context}"""

IMAGE_SYSTEM_PROMPT = """You are a medical image analysis assistant for preliminary health guidance only.

RESPONSE FORMAT:
1. **Observation**: Brief description of what you see (1 sentence)
2. **Possible Condition**: Most likely explanation (1 sentence)
3. **Recommended Action**: What the user should do next (1 sentence)

DISCLAIMER (always include):
"This is NOT a medical diagnosis. Please consult a healthcare professional for accurate evaluation."

RULES:
- Be observational, not diagnostic
- Focus on visible symptoms only
- Suggest professional consultation for anything concerning
- Consider user context: Age {age}, Allergies: {allergies}"""

SYMPTOM_SYSTEM_PROMPT = """You give brief, safe self-care guidance for a logged symptom.
Reply in at most 3 sentences. Never diagnose or prescribe medication.
Recommend seeing a doctor when severity is high or the symptom has lasted several days.

USER MEDICAL CONTEXT:
{context}"""


def _medical_context(user: User) -> str:
    return "\n".join([
        f"- Age: {user.age or 'unknown'}, Gender: {user.gender or 'unknown'}",
        f"- Health Scores: Physical {user.physical_score or 50}/100, Mental {user.mental_score or 50}/100",
        f"- Lifestyle: {user.lifestyle or 'not specified'}",
        f"- Known Allergies: {user.allergies or 'none reported'}",
        f"- Past Conditions: {user.past_diseases or 'none reported'}",
        f"- Current Conditions: {user.current_conditions or 'none reported'}",
    ])


def symptom_fallback_analysis(description: str) -> str:
    return (
        f"Based on your symptom of {description}, it is recommended to rest and hydrate. "
        "Consult a doctor if it persists."
    )


async def chat_reply(user: User, message: str) -> str:
    """Answer a free-text health question; never raises."""
    provider = get_provider()
    if provider is None:
        logger.warning("Chat requested but no AI provider is configured")
        return CHAT_FALLBACK_REPLY
    try:
        result = await provider.chat(
            messages=[{"role": "user", "content": message}],
            model=provider.get_model(),
            system=CHAT_SYSTEM_PROMPT.format(context=_medical_context(user)),
            max_tokens=settings.AI_CHAT_MAX_TOKENS,
        )
    except Exception as e:
        logger.warning(f"Chat completion failed, using fallback reply: {e}")
        return CHAT_FALLBACK_REPLY
    return (result.get("content") or "").strip() or CHAT_EMPTY_REPLY


async def analyze_image(user: User, image_data_url: str, context: str | None = None) -> str:
    """Describe a health-related image; never raises."""
    provider = get_provider()
    if provider is None:
        logger.warning("Image analysis requested but no AI provider is configured")
        return IMAGE_FALLBACK_ANALYSIS
    try:
        result = await provider.chat_with_vision(
            messages=[{"role": "user", "content": (context or "").strip() or IMAGE_DEFAULT_CONTEXT}],
            image_data_url=image_data_url,
            model=provider.get_model(),
            system=IMAGE_SYSTEM_PROMPT.format(
                age=user.age or "unknown",
                allergies=user.allergies or "none known",
            ),
            max_tokens=settings.AI_IMAGE_MAX_TOKENS,
        )
    except Exception as e:
        logger.warning(f"Image analysis failed, using fallback reply: {e}")
        return IMAGE_FALLBACK_ANALYSIS
    return (result.get("content") or "").strip() or IMAGE_EMPTY_ANALYSIS


async def analyze_symptom(user: User, description: str, severity: int, duration: int) -> str:
    """Short guidance text for a new symptom log; falls back to a fixed template."""
    provider = get_provider()
    if provider is None:
        return symptom_fallback_analysis(description)
    prompt = f"Symptom: {description}\nSeverity: {severity}/10\nDuration: {duration} day(s)"
    try:
        result = await provider.chat(
            messages=[{"role": "user", "content": prompt}],
            model=provider.get_model(),
            system=SYMPTOM_SYSTEM_PROMPT.format(context=_medical_context(user)),
            max_tokens=settings.AI_SYMPTOM_MAX_TOKENS,
        )
    except Exception as e:
        logger.warning(f"Symptom analysis failed, using template guidance: {e}")
        return symptom_fallback_analysis(description)
    return (result.get("content") or "").strip() or symptom_fallback_analysis(description)
