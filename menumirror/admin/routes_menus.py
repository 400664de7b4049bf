"""
Admin API — Menu editing endpoints (the host's write path).

Every mutation passes the request's sync listener to the tree store, so
edits enqueue syncs that drain when the request ends.

Blueprint: menus_bp
Prefix: /api/menus
Routes:
    /api/menus                          (GET list, POST create)
    /api/menus/<id>                     (GET, PUT, DELETE)
    /api/menus/<id>/items               (POST — save one item)
    /api/menus/<id>/items/<item_id>     (DELETE)

Blueprint: public_bp
Routes:
    /menus/<slug>                       (GET — rendered tree, never syncs)
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from .helpers import error, listener, payload, require_capability, services

menus_bp = Blueprint("menus", __name__)
public_bp = Blueprint("public", __name__)


@menus_bp.route("", methods=["GET"])
def api_list_menus():
    menus = services().tree.list_menus()
    return jsonify({"menus": [m.model_dump() for m in menus]})


@menus_bp.route("", methods=["POST"])
def api_create_menu():
    """Create a menu, optionally with its initial items."""
    denied = require_capability()
    if denied is not None:
        return denied

    data = payload()
    name = str(data.get("name") or "").strip()
    if not name:
        return error("Menu name required.", 400)

    tree = services().tree
    menu = tree.create_menu(name, slug=data.get("slug"), listener=listener())
    items = data.get("items")
    if items:
        menu = tree.update_menu(menu.id, items=items, listener=listener())
    return jsonify({"success": True, "menu": menu.model_dump()}), 201


@menus_bp.route("/<int:menu_id>", methods=["GET"])
def api_get_menu(menu_id: int):
    return jsonify(services().tree.get_menu(menu_id).model_dump())


@menus_bp.route("/<int:menu_id>", methods=["PUT"])
def api_update_menu(menu_id: int):
    """Rename and/or replace the items of a menu."""
    denied = require_capability()
    if denied is not None:
        return denied

    data = payload()
    menu = services().tree.update_menu(
        menu_id,
        name=data.get("name"),
        items=data.get("items"),
        listener=listener(),
    )
    return jsonify({"success": True, "menu": menu.model_dump()})


@menus_bp.route("/<int:menu_id>", methods=["DELETE"])
def api_delete_menu(menu_id: int):
    denied = require_capability()
    if denied is not None:
        return denied

    services().tree.delete_menu(menu_id, listener=listener())
    return jsonify({"success": True})


@menus_bp.route("/<int:menu_id>/items", methods=["POST"])
def api_save_item(menu_id: int):
    denied = require_capability()
    if denied is not None:
        return denied

    item = services().tree.save_item(menu_id, payload(), listener=listener())
    return jsonify({"success": True, "item": item.model_dump()})


@menus_bp.route("/<int:menu_id>/items/<int:item_id>", methods=["DELETE"])
def api_delete_item(menu_id: int, item_id: int):
    denied = require_capability()
    if denied is not None:
        return denied

    if not services().tree.delete_item(menu_id, item_id, listener=listener()):
        return error(f"Item {item_id} not found", 404)
    return jsonify({"success": True})


@public_bp.route("/menus/<slug>", methods=["GET"])
def public_menu(slug: str):
    """Render a menu's nested tree for site visitors."""
    svc = services()
    menu = svc.tree.find_by_slug(slug)
    if menu is None:
        return error(f"Menu '{slug}' not found", 404)
    return jsonify({"name": menu.name, "items": svc.normalizer.normalize(menu.items)})
