"""Client for an OpenAI-compatible chat completions endpoint."""
import json
import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Workbench AI. Respond with concise, actionable output. "
    "If the user asks for mutations, describe exact operations to perform."
)
MAX_TOKENS = 800


class AssistantProviderError(Exception):
    """The model provider could not produce a reply"""
    pass


def is_configured() -> bool:
    return bool(settings.OPENAI_API_KEY)


def build_messages(message: str, scope: str, context: Dict[str, Any]):
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Scope: {scope}\n\nContext:\n{json.dumps(context, indent=2, default=str)}\n\nUser message:\n{message}",
        },
    ]


def request_completion(message: str, scope: str, context: Dict[str, Any]) -> Optional[str]:
    """
    Ask the configured model for a reply.

    :return: the reply text, or ``None`` when the model answered with no content
    :raises AssistantProviderError: when the call fails or the response is malformed
    """
    url = f"{settings.OPENAI_BASE_URL.rstrip('/')}/chat/completions"
    payload = {
        "model": settings.OPENAI_MODEL,
        "max_tokens": MAX_TOKENS,
        "messages": build_messages(message, scope, context),
    }
    headers = {
        "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }
    timeout = settings.OPENAI_TIMEOUT_SECONDS

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
        response.raise_for_status()
    except Timeout:
        raise AssistantProviderError(f"Request timed out after {timeout} seconds.")
    except ConnectionError:
        raise AssistantProviderError("Failed to connect to the model provider.")
    except HTTPError:
        if response.status_code == 401:
            error_msg = "Authentication failed. Please check OPENAI_API_KEY."
        elif response.status_code == 429:
            error_msg = "Rate limit exceeded."
        elif 500 <= response.status_code < 600:
            error_msg = f"Provider error ({response.status_code})."
        else:
            error_msg = f"HTTP error {response.status_code}: {response.text[:200]}"
        raise AssistantProviderError(error_msg)
    except RequestException as e:
        raise AssistantProviderError(f"Request failed due to network error: {e}")

    try:
        data = response.json()
        return data["choices"][0]["message"].get("content") or None
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        raise AssistantProviderError(f"Unexpected response format from provider: {e}")
