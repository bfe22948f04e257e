import os
import asyncio
from functools import lru_cache
from typing import Any, Dict, Optional

import google.generativeai as genai
from dotenv import load_dotenv

from assistant_parser import parse_assistant_reply
from config import AI_MAX_RETRIES, AI_MODEL_NAME, AI_RETRY_BASE_DELAY, ASSISTANT_FALLBACK_MESSAGE
from llm_config import SYSTEM_INSTRUCTION, build_context_prompt
from schemas import AssistantReply

load_dotenv()


@lru_cache(maxsize=1)
def get_model() -> Any:
    """Configure Gemini on first use so the scoring routes work without an API key."""
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        print("WARNING: GOOGLE_API_KEY not found in environment variables.")
        raise ValueError("GOOGLE_API_KEY not found in environment variables. Please add it.")
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(
        model_name=AI_MODEL_NAME,
        system_instruction=SYSTEM_INSTRUCTION,
    )


def _token_usage(prompt_tokens: int, completion_tokens: int) -> Dict[str, int]:
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


def _response_text(response: Any) -> Optional[str]:
    if not response.candidates or not response.candidates[0].content.parts:
        return None
    texts = [part.text for part in response.candidates[0].content.parts if getattr(part, "text", None)]
    return "".join(texts) or None


async def get_ai_response(
    user_query: str,
    current_filters: Optional[Dict[str, Any]] = None,
    model: Any = None,
    max_retries: int = AI_MAX_RETRIES,
    base_delay: float = AI_RETRY_BASE_DELAY,
) -> dict:
    """
    Ask Gemini to translate a request into filter changes.

    Failed calls are retried with exponential backoff. When every attempt
    fails, or the reply carries no JSON, the fixed fallback message is
    returned instead of an error. Tracks token usage across attempts.
    """
    total_prompt_tokens = 0
    total_completion_tokens = 0

    if model is None:
        model = get_model()

    prompt = build_context_prompt(user_query, current_filters)
    reply_text = None

    for attempt in range(max_retries):
        try:
            print(f"\nSending to Gemini (attempt {attempt + 1}/{max_retries}): Query: '{user_query}'")
            response = await model.generate_content_async(prompt)
        except Exception as e:
            print(f"Error calling Gemini: {e}")
            if attempt < max_retries - 1:
                delay = base_delay * 2 ** attempt
                print(f"Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
            continue

        usage = getattr(response, "usage_metadata", None)
        if usage:
            total_prompt_tokens += usage.prompt_token_count
            total_completion_tokens += usage.candidates_token_count
            print(f"Token usage: Prompt={usage.prompt_token_count}, Completion={usage.candidates_token_count}")

        reply_text = _response_text(response)
        break

    if reply_text is None:
        print("AI did not return a usable response, sending fallback message")
        reply = AssistantReply(message=ASSISTANT_FALLBACK_MESSAGE, fallback=True)
    else:
        reply = parse_assistant_reply(reply_text)

    return {
        "filters": reply.filters.model_dump(by_alias=True, exclude_none=True),
        "message": reply.message,
        "fallback": reply.fallback,
        "token_usage": _token_usage(total_prompt_tokens, total_completion_tokens),
    }
