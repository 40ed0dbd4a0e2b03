"""
Pytest Configuration and Fixtures
=================================

Provides shared fixtures for the test suite:
- Sample menu page HTML (current and older markup)
- Fake LLM client (scripted responses, records every call)
- Isolated SQLite shopping list store (tmp_path)
- run_async helper for driving coroutines from sync tests

SAFETY: Nothing here touches the network or the real data/ store.
"""

import asyncio
import json
from typing import Any, List

import pytest


# =============================================================================
# Sample Pages
# =============================================================================

MENU_URL = "https://www.lettuceclub.net/recipe/kondate/detail/k20260216/"

CURRENT_MENU_HTML = """
<html><body>
  <h1 class="main_tit">鶏の照り焼き献立</h1>
  <div class="js-tab-content">
    <img src="/common/img/icon_timer.png">
    <img data-src="/img/dish/teriyaki.jpg" src="/img/dummy.gif">
    <h2>鶏の照り焼きの作り方</h2>
    <a href="/recipe/dish/11111/">詳しく見る</a>
  </div>
  <div class="section-content">
    <img src="https://cdn.example.com/logo.png">
    <img src="https://cdn.example.com/salad.jpg">
    <h2>ほうれん草のおひたしの作り方</h2>
    <a href="https://www.lettuceclub.net/recipe/dish/22222/">詳しく見る</a>
  </div>
  <div class="js-tab-content">
    <h2>鶏の照り焼きの作り方</h2>
  </div>
  <div class="ingredients-head"><h2>献立の材料</h2></div>
  <div class="ingredients-body">
    <p>鶏もも肉 1枚</p>

    <p>  ほうれん草 1/2束  </p>
    <p>しょうゆ 大さじ2</p>
  </div>
</body></html>
"""

LEGACY_MENU_HTML = """
<html><body>
  <h1 class="main_tit">さばの味噌煮献立</h1>
  <div class="item_main">
    <a href="/recipe/dish/33333/"><img src="/img/saba.jpg"></a>
    <p class="w_tit">さばの味噌煮</p>
  </div>
  <div class="item_sub">
    <a href="/recipe/dish/44444/"><img src="/img/kinpira.jpg"></a>
    <p class="w_tit">きんぴらごぼう</p>
  </div>
  <div class="item_sub">
    <p class="w_tit">さばの味噌煮</p>
  </div>
</body></html>
"""


@pytest.fixture
def menu_url():
    return MENU_URL


@pytest.fixture
def current_menu_html():
    return CURRENT_MENU_HTML


@pytest.fixture
def legacy_menu_html():
    return LEGACY_MENU_HTML


# =============================================================================
# LLM Fakes
# =============================================================================

class FakeLLMClient:
    """
    Scripted stand-in for llm_client.LLMClient.

    Each entry of `responses` is either a string (returned) or an exception
    instance (raised). Calls are recorded as (model, prompt) tuples.
    """

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls = []

    async def complete(self, prompt: str, model: str, **kwargs) -> str:
        self.calls.append((model, prompt))
        if not self.responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def models_called(self) -> List[str]:
        return [model for model, _ in self.calls]


class SleepRecorder:
    """Awaitable replacement for asyncio.sleep that only records delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


def fenced_json(items) -> str:
    """A model answer in the expected 'reasoning + ```json block' shape."""
    return "思考プロセス:\n合算しました。\n\n```json\n" + json.dumps(items, ensure_ascii=False) + "\n```"


@pytest.fixture
def fake_llm():
    return FakeLLMClient


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


# =============================================================================
# Store / Async Helpers
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Fresh SQLite store in a temp directory."""
    from shopping_store import ShoppingListStore
    return ShoppingListStore(tmp_path / "shopping_lists.db")


def run_async(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


# =============================================================================
# Test Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "readonly: marks test as read-only (no database writes)"
    )
    config.addinivalue_line(
        "markers", "creates_data: marks test as creating data (temp store only)"
    )
