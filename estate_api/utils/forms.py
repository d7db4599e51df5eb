"""
Request body helpers for listing create and update.

Listings are submitted as multipart/form-data so that images can travel with
the fields. Nested objects arrive either as JSON strings (``location``,
``features``, ``contactInfo``) or as dotted fields (``location.city``); a JSON
string wins when both are present. A plain JSON body is accepted as well.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import Request, UploadFile
from starlette.datastructures import FormData, UploadFile as StarletteUploadFile

from estate_api.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

NESTED_FIELDS = {
    "location": "location",
    "features": "features",
    "contactInfo": "contactInfo",
    "contact_info": "contactInfo",
}
LIST_FIELDS = {"amenities"}
IGNORED_FIELDS = {"owner", "images", "existingImages", "existing_images"}


class ListingForm:
    """Parsed listing request: field payload, kept image references and uploads."""

    def __init__(
        self,
        payload: Dict[str, Any],
        existing_images: Optional[List[str]] = None,
        files: Optional[List[UploadFile]] = None
    ):
        self.payload = payload
        self.existing_images = existing_images
        self.files = files or []


def _parse_json(field: str, raw: str, expected: type) -> Any:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError.for_field(field, f"{field} must be valid JSON")

    if not isinstance(value, expected):
        kind = "an object" if expected is dict else "an array"
        raise ValidationError.for_field(field, f"{field} must be {kind}")
    return value


def _set_dotted(target: Dict[str, Any], path: List[str], value: Any) -> None:
    for key in path[:-1]:
        node = target.setdefault(key, {})
        if not isinstance(node, dict):
            raise ValidationError.for_field(".".join(path), "Conflicting nested form fields")
        target = node
    target[path[-1]] = value


def _form_payload(form: FormData) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    dotted: Dict[str, Dict[str, Any]] = {}
    json_nested: Dict[str, Dict[str, Any]] = {}

    for key in dict.fromkeys(form.keys()):
        if key in IGNORED_FIELDS:
            continue

        values = [v for v in form.getlist(key) if not isinstance(v, StarletteUploadFile)]
        if not values:
            continue

        if "." in key:
            root, *path = key.split(".")
            root = NESTED_FIELDS.get(root, root)
            if path[-1] in LIST_FIELDS:
                value: Any = [v for v in values if v != ""]
            else:
                value = values[-1]
                if value == "":
                    continue
            _set_dotted(dotted.setdefault(root, {}), path, value)
        elif key in NESTED_FIELDS:
            raw = values[-1]
            if raw == "":
                continue
            json_nested[NESTED_FIELDS[key]] = _parse_json(key, raw, dict)
        else:
            value = values[-1]
            if value != "":
                payload[key] = value

    payload.update(dotted)
    payload.update(json_nested)
    return payload


def _existing_images(form: FormData) -> Optional[List[str]]:
    key = "existingImages" if "existingImages" in form else "existing_images"
    if key not in form:
        return None

    values = [v for v in form.getlist(key) if isinstance(v, str)]
    if len(values) == 1 and values[0].strip().startswith("["):
        return [str(item) for item in _parse_json("existingImages", values[0], list)]
    return [v for v in values if v != ""]


async def read_listing_form(request: Request) -> ListingForm:
    """
    Read a listing create/update request body.

    Raises:
        ValidationError: If a JSON field is malformed
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError.for_field("body", "Request body must be valid JSON")
        if not isinstance(body, dict):
            raise ValidationError.for_field("body", "Request body must be an object")

        existing = body.pop("existingImages", body.pop("existing_images", None))
        for key in IGNORED_FIELDS:
            body.pop(key, None)
        if existing is not None and not isinstance(existing, list):
            raise ValidationError.for_field("existingImages", "existingImages must be an array")
        return ListingForm(body, [str(item) for item in existing] if existing is not None else None)

    form = await request.form()
    files = [f for f in form.getlist("images") if isinstance(f, StarletteUploadFile)]
    logger.debug(f"Listing form with fields {sorted(form.keys())} and {len(files)} files")
    return ListingForm(_form_payload(form), _existing_images(form), files)
