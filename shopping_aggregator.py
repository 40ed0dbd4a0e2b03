"""
Shopping List Aggregator
========================

Consolidates the week's day-labeled ingredient blocks into one deduplicated,
categorized ingredient list using the LLM.

Degrade path:
1. Ask each model of the cascade in order (retry_policy decides retries/waits)
2. Accept either "reasoning + ```json block" or a bare JSON array
3. When every model fails, fall back to one uncategorized entry per input line

aggregate_ingredients() never raises: the caller always gets a list.
"""

import asyncio
import json
import re
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, List, Optional

from block_formatter import BLOCK_HEADER_MARKER
from llm_client import LLMClient, LLMServiceError
from menu_models import FALLBACK_CATEGORY, SHOPPING_CATEGORIES, Ingredient
from prompts import build_aggregation_prompt
from retry_policy import CascadeRetryPolicy, RetryAction
from tools.logging_utils import get_logger

logger = get_logger(__name__)

FALLBACK_NAME_LIMIT = 20
FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
FENCED_BLOCK_PATTERN = re.compile(r"```\s*([\s\S]*?)```")


class ResponseFormatError(ValueError):
    """The model answered, but not with a usable ingredient array."""


# ============================================================================
# RESPONSE PARSING
# ============================================================================

def extract_json_payload(text: str) -> str:
    """
    Pull the JSON part out of a model response.

    Prefers a fenced block (the prompt asks for reasoning first); without one
    the whole trimmed response is assumed to be JSON.
    """
    for pattern in (FENCED_JSON_PATTERN, FENCED_BLOCK_PATTERN):
        match = pattern.search(text or "")
        if match and match.group(1).strip():
            return match.group(1).strip()
    return (text or "").strip()


def _dedupe(values) -> List[str]:
    seen = []
    for value in values:
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def parse_ingredient_response(text: str) -> List[Ingredient]:
    """
    Parse and validate a model response into Ingredient records.

    Raises:
        ResponseFormatError: no JSON, invalid JSON, or not an array of
            objects each carrying a non-empty name
    """
    payload = extract_json_payload(text)
    if not payload:
        raise ResponseFormatError("Empty response")

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ResponseFormatError(f"Expected a JSON array, got {type(data).__name__}")

    ingredients = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise ResponseFormatError(f"Item {idx} is not an object")

        name = str(item.get("name") or "").strip()
        if not name:
            raise ResponseFormatError(f"Item {idx}: name is empty")

        used_days = item.get("usedDays") or []
        if isinstance(used_days, str):
            used_days = [used_days]
        elif not isinstance(used_days, list):
            raise ResponseFormatError(f"Item {idx}: usedDays must be a list")

        amount = item.get("amount")
        ingredients.append(Ingredient(
            name=name,
            amount="" if amount is None else str(amount).strip(),
            category=str(item.get("category") or "").strip(),
            used_days=_dedupe(used_days),
        ))

    return ingredients


def flag_unknown_categories(ingredients: List[Ingredient]) -> List[Ingredient]:
    """Log entries whose category is outside the fixed list. Returns the offenders."""
    unknown = [i for i in ingredients if not i.is_known_category]
    for item in unknown:
        logger.warning(f"⚠️  Category '{item.category}' for '{item.name}' is not in the category list")
    return unknown


# ============================================================================
# FALLBACK
# ============================================================================

def fallback_ingredients(raw_text: str) -> List[Ingredient]:
    """
    One uncategorized Ingredient per non-blank, non-header input line.

    Used when every model failed. Never raises.
    """
    result = []
    for line in (raw_text or "").split("\n"):
        line = line.strip()
        if not line or line.startswith(BLOCK_HEADER_MARKER):
            continue
        if len(line) > FALLBACK_NAME_LIMIT:
            line = line[:FALLBACK_NAME_LIMIT] + "..."
        result.append(Ingredient(name=line, amount="", category=FALLBACK_CATEGORY, used_days=[]))
    return result


# ============================================================================
# AGGREGATION
# ============================================================================

async def aggregate_ingredients(
    raw_text: str,
    client: Optional[LLMClient] = None,
    policy: Optional[CascadeRetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[Ingredient]:
    """
    Main entry point: consolidate the combined ingredient blocks.

    Args:
        raw_text: Day-labeled blocks joined with blank lines
        client: LLM client (default: LLMClient() from config)
        policy: Cascade/backoff policy (default: from config)
        sleep: Awaitable used for backoff waits (tests pass a recorder)

    Returns:
        Parsed ingredient list, or the line-based fallback list
    """
    if not raw_text or not raw_text.strip():
        logger.info("No ingredient text to aggregate")
        return []

    client = client or LLMClient()
    policy = policy or CascadeRetryPolicy.from_config()
    prompt = build_aggregation_prompt(raw_text)

    while not policy.exhausted:
        model = policy.current_model
        attempt = policy.attempt
        transient = False
        try:
            logger.info(f"🚀 Aggregating with {model} (attempt {attempt}/{policy.max_attempts})")
            response = await client.complete(prompt, model=model)
            ingredients = parse_ingredient_response(response)
            flag_unknown_categories(ingredients)
            logger.info(f"✅ {model} returned {len(ingredients)} ingredients")
            return ingredients
        except LLMServiceError as e:
            transient = e.is_transient
            logger.error(f"❌ {model} failed ({'transient' if transient else 'permanent'}): {e.message}")
        except ResponseFormatError as e:
            logger.error(f"❌ {model} returned an unusable response: {e}")
        except Exception as e:
            logger.error(f"❌ Unexpected error calling {model}: {e}", exc_info=True)

        decision = policy.on_failure(transient)
        if decision.action == RetryAction.RETRY:
            logger.warning(f"⚠️  {model} rate limited or overloaded, waiting {decision.delay:g}s before retrying")
            await sleep(decision.delay)
        elif decision.action == RetryAction.NEXT_MODEL:
            logger.warning(f"⚠️  Giving up on {model}, trying {decision.model}")

    logger.warning("⚠️  All models failed. Falling back to line-based ingredient list.")
    return fallback_ingredients(raw_text)


def group_by_category(ingredients: List[Ingredient]) -> Dict[str, List[Ingredient]]:
    """
    Group ingredients for display.

    Order: fixed categories first, then any unknown categories as they
    appear, then the fallback category.
    """
    grouped: "OrderedDict[str, List[Ingredient]]" = OrderedDict(
        (category, []) for category in SHOPPING_CATEGORIES)
    fallback = []
    for item in ingredients:
        if item.category == FALLBACK_CATEGORY:
            fallback.append(item)
        else:
            grouped.setdefault(item.category, []).append(item)
    if fallback:
        grouped[FALLBACK_CATEGORY] = fallback
    return OrderedDict((k, v) for k, v in grouped.items() if v)
