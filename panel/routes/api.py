"""JSON API routes - batch aggregation, single-page scrape and saved lists."""
import asyncio
import sqlite3

from flask import Blueprint, current_app, jsonify, request

from menu_models import DayMenu, Ingredient, ShoppingList
from tools.logging_utils import get_logger

logger = get_logger(__name__)

bp = Blueprint('api', __name__)


def get_store():
    """The store configured on the app, else the shared one."""
    from shopping_store import ShoppingListStore
    return current_app.config.get('STORE') or ShoppingListStore.instance()


def _json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _is_text_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


# =============================================================================
# AGGREGATION
# =============================================================================

@bp.route('/aggregate', methods=['POST'])
def aggregate():
    """Full mode ({urls}) or recompute mode ({ingredientsData})."""
    import orchestrator

    body = _json_body()
    ingredients_data = body.get('ingredientsData')
    urls = body.get('urls')

    try:
        if isinstance(ingredients_data, list):
            # null entries left by client-side day filtering carry no text
            blocks = [b for b in ingredients_data if isinstance(b, str)]
            outcome = asyncio.run(orchestrator.recompute_ingredients(blocks))
            if outcome.nothing_to_aggregate:
                return jsonify({'error': orchestrator.NOTHING_TO_AGGREGATE, 'ingredients': []})
            return jsonify({'ingredients': [i.to_dict() for i in outcome.ingredients]})

        if not _is_text_list(urls):
            return jsonify({'error': 'URLs array is required'}), 400

        outcome = asyncio.run(orchestrator.run_full_batch(urls))
    except Exception as e:
        logger.error(f"❌ Aggregation failed: {e}", exc_info=True)
        return jsonify({'error': 'Failed to generate shopping list'}), 500

    data = outcome.to_dict()
    if outcome.nothing_to_aggregate:
        data.pop('ingredients', None)
        return jsonify(data), 400
    return jsonify(data)


@bp.route('/scrape')
def scrape():
    """Scrape one menu page."""
    from menu_scraper import scrape_menu_page

    url = request.args.get('url')
    if not url:
        return jsonify({'error': 'URL parameter is required'}), 400

    page = scrape_menu_page(url)
    if page is None:
        return jsonify({'error': 'Failed to scrape data'}), 500
    return jsonify(page.to_dict())


# =============================================================================
# SAVED LISTS
# =============================================================================

@bp.route('/list', methods=['GET'])
def get_list():
    """Fetch the saved list for a week."""
    week_key = request.args.get('weekKey')
    if not week_key:
        return jsonify({'error': 'weekKey is required'}), 400

    try:
        data = get_store().get_week(week_key)
    except sqlite3.Error as e:
        logger.error(f"❌ Error fetching shopping list {week_key}: {e}")
        return jsonify({'error': 'Failed to fetch shopping list'}), 500

    if data is None:
        return jsonify({'found': False})
    return jsonify({'found': True, 'data': data})


@bp.route('/list', methods=['POST'])
def save_list():
    """Save (replace) a week's list. Every item comes back unchecked with an id."""
    body = _json_body()
    week_key = body.get('weekKey')
    menus = body.get('menus')
    active_day_keys = body.get('activeDayKeys')
    ingredients = body.get('ingredients')

    if (not week_key or not isinstance(week_key, str)
            or not isinstance(menus, list)
            or not _is_text_list(active_day_keys)
            or not isinstance(ingredients, list)
            or not all(isinstance(i, dict) for i in menus + ingredients)):
        return jsonify({'error': 'Missing required fields'}), 400

    shopping_list = ShoppingList(
        week_key=week_key,
        menus=[DayMenu.from_dict(m) for m in menus],
        ingredients=[Ingredient.from_dict(i) for i in ingredients],
    )
    try:
        items = get_store().save_week(shopping_list, active_day_keys)
    except sqlite3.Error as e:
        logger.error(f"❌ Error saving shopping list {week_key}: {e}")
        return jsonify({'error': 'Failed to save shopping list'}), 500

    return jsonify({'success': True, 'ingredients': items})


@bp.route('/list/check', methods=['PATCH'])
def check_item():
    """Toggle one item's purchased flag."""
    body = _json_body()
    item_id = body.get('itemId')
    is_checked = body.get('isChecked')

    if not item_id or not isinstance(is_checked, bool):
        return jsonify({'error': 'Missing or invalid itemId / isChecked'}), 400

    try:
        item = get_store().set_item_checked(str(item_id), is_checked)
    except sqlite3.Error as e:
        logger.error(f"❌ Error updating item {item_id}: {e}")
        return jsonify({'error': 'Failed to update check status'}), 500

    if item is None:
        return jsonify({'error': 'Item not found'}), 404
    return jsonify({'success': True, 'item': item})
