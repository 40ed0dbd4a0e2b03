"""
Aggregation Prompts
===================

LLM prompt used to turn the week's day-labeled ingredient blocks into one
consolidated shopping list. Kept apart from the calling code so the wording can
be tuned without touching the retry/parsing logic.

The prompt asks for a short reasoning section followed by a ```json fenced
array; shopping_aggregator also accepts a bare JSON array.
"""

from menu_models import SHOPPING_CATEGORIES, WEEKDAY_LABELS


# Required variables: {categories}, {weekdays}, {raw_text}
INGREDIENT_AGGREGATION_PROMPT = """以下のテキストは、複数の献立の材料リストを結合したものです。
【】で囲まれた行は、その献立の曜日と献立名を示しています。

これを解析し、同じ食材の分量を合算した買い物リストを作成してください。
あわせて、各食材が何曜日の献立で使われるかも記録してください。

まず思考プロセス（分量の計算過程やカテゴリ分類の根拠）を書き、
その後に以下の形式のJSONを ```json ブロックで出力してください。

出力形式:
思考プロセス:
(ここに計算過程などを記述)

```json
[
  {{
    "name": "食材名（例: 玉ねぎ）",
    "amount": "合算した分量（例: 2個）",
    "category": "カテゴリ名",
    "usedDays": ["月", "水"]
  }}
]
```

ルール:
1. 表記ゆれは一つの名前に統一してください（例: "鶏もも肉" と "とり肉" -> "鶏もも肉"）。

2. 分量は単位が揃うものは計算して合算してください（例: "1/2個" + "1.5個" -> "2個"）。
   - 分量の書かれていない飲料やパック商品は「1本」「1パック」など適切な単位で数えてください（迷ったら「1本」）。

3. 調味料も全て集計してください。塩、こしょう、醤油、サラダ油、片栗粉、マヨネーズなど、家にありそうな基本調味料も含めます。

4. 「合わせ調味料」という項目は作らないでください。中身の調味料をそれぞれ集計してください。
   - 例: 「合わせ調味料（酒大さじ1、醤油大さじ1）」 -> 「酒」「醤油」を個別に追加する。

5. categoryは必ず次のリストのどれか一つと完全に一致させてください。
   リスト: [{categories}]

6. usedDaysには、その食材が登場するセクションの曜日（{weekdays}）を重複なく列挙してください。

入力テキスト:
{raw_text}
"""


def build_aggregation_prompt(raw_text: str) -> str:
    """Fill the aggregation prompt with the category list and the combined blocks."""
    return INGREDIENT_AGGREGATION_PROMPT.format(
        categories="、".join(SHOPPING_CATEGORIES),
        weekdays="、".join(WEEKDAY_LABELS),
        raw_text=raw_text,
    )
