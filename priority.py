"""Gemini-backed priority classification for new complaints."""
from google import genai
from google.genai import types

from config import GEMINI_API_KEY, GEMINI_MODEL, GEMINI_TIMEOUT_SECONDS
from models import PRIORITY_LEVELS
from utils.logger import get_logger

logger = get_logger("priority")

DEFAULT_PRIORITY = "medium"

PRIORITY_PROMPT = """Analyze the following customer complaint and rate its urgency/priority.
You must respond with EXACTLY ONE WORD from this list: low, medium, high, critical.
Do not include any other text, punctuation, formatting, or explanation.

Make the priority "critical" if the complaint describes a situation that poses an immediate risk to health, safety, or security, or if it indicates a severe service failure that significantly impacts the customer. Examples include reports of physical harm, data breaches, major outages, or any issue that could lead to significant financial loss or reputational damage.

Title: {title}
Description: {description}"""


def normalize_priority(value):
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized in PRIORITY_LEVELS:
        return normalized
    return None


def build_priority_prompt(title: str, description: str) -> str:
    return PRIORITY_PROMPT.format(title=title, description=description)


def _generate_text(prompt: str) -> str:
    if not GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY is not configured")

    client = genai.Client(
        api_key=GEMINI_API_KEY,
        http_options=types.HttpOptions(timeout=int(GEMINI_TIMEOUT_SECONDS * 1000)),
    )
    response = client.models.generate_content(
        model=GEMINI_MODEL,
        contents=prompt,
        config=types.GenerateContentConfig(temperature=0),
    )
    return response.text or ""


def classify_priority(title: str, description: str) -> str:
    """Return low/medium/high/critical; any failure or odd reply yields medium."""
    try:
        raw = _generate_text(build_priority_prompt(title, description))
    except Exception:
        logger.exception("Error analyzing priority with Gemini API")
        return DEFAULT_PRIORITY

    priority = normalize_priority(raw)
    if priority is None:
        logger.warning("Unexpected response from Gemini API for priority analysis: %r", raw)
        return DEFAULT_PRIORITY
    return priority
