from __future__ import annotations

from flask import Blueprint, jsonify

from ..game.words import ARABIC_LETTERS, DEFAULT_CATEGORIES, DEFAULT_SPY_CATEGORIES, SPY_WORD_DATABASE

bp = Blueprint("words", __name__)


@bp.get("/words/categories")
def get_categories():
    spy_categories = [
        {
            "key": key,
            "label": entry["label"],
            "count": len(entry["words"]),
            "default": key in DEFAULT_SPY_CATEGORIES,
        }
        for key, entry in SPY_WORD_DATABASE.items()
    ]
    return jsonify(
        {
            "categories": list(DEFAULT_CATEGORIES),
            "letters": list(ARABIC_LETTERS),
            "spyCategories": spy_categories,
        }
    )
