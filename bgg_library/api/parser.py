"""
Parsers for BGG XML API2 responses.

The XML is treated as untrusted: optional fields may be missing or hold
junk, in which case they come back as None. Only a missing identity or
primary name makes a parse fail.
"""

import html
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from bs4 import BeautifulSoup, ParserRejectedMarkup

from ..config import DEFAULT_STATUS
from ..error_handling import NotFound, ParseError, RateLimited
from ..models import CollectionItem, GameDetails, SearchResult

logger = logging.getLogger(__name__)

LINK_TYPES = {
    "categories": "boardgamecategory",
    "mechanics": "boardgamemechanic",
    "designers": "boardgamedesigner",
    "publishers": "boardgamepublisher",
}


def decode_html(text: Optional[str]) -> Optional[str]:
    """Decode HTML entities (BGG double-escapes descriptions) and drop stray markup."""
    if text is None:
        return None
    if "&" not in text and "<" not in text:
        return text
    try:
        return BeautifulSoup(text, "html.parser").get_text()
    except ParserRejectedMarkup as e:
        logger.warning(f"Keeping unparsed markup, html.parser rejected it: {e}")
        return html.unescape(text)


def parse_document(content: bytes) -> ET.Element:
    """
    Parse raw response bytes and surface BGG error documents as exceptions.

    Args:
        content: Response body

    Returns:
        Root element

    Raises:
        ParseError: Body is not well-formed XML
        NotFound: BGG reported an unknown user or item
        RateLimited: BGG reported a rate limit in the body
    """
    if not content or not content.strip():
        raise ParseError("Empty response from BGG")
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"Malformed XML from BGG: {e}") from e

    if root.tag in ("errors", "error"):
        messages = [m.text.strip() for m in root.iter("message") if m.text]
        if root.tag == "error" and root.get("message"):
            messages.append(root.get("message"))
        message = "; ".join(messages) or "Unknown BGG error"
        lowered = message.lower()
        if "rate limit" in lowered:
            raise RateLimited(message)
        if "invalid username" in lowered or "not found" in lowered:
            raise NotFound(message)
        raise ParseError(f"BGG returned an error document: {message}")
    return root


def _value(elem: Optional[ET.Element]) -> Optional[str]:
    """Return a `value` attribute, or the element text for attribute-less tags."""
    if elem is None:
        return None
    raw = elem.get("value")
    if raw is None:
        raw = elem.text
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _to_int(raw: Optional[str], zero_is_unset: bool = False) -> Optional[int]:
    if raw is None:
        return None
    try:
        number = int(float(raw))
    except (ValueError, OverflowError):
        return None
    if zero_is_unset and number == 0:
        return None
    return number


def _to_float(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        number = float(raw)
    except ValueError:
        return None
    # BGG reports 0 for "no votes yet"
    return number if number > 0 else None


def _to_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _text(item: ET.Element, tag: str) -> Optional[str]:
    elem = item.find(tag)
    if elem is None or elem.text is None:
        return None
    text = elem.text.strip()
    return text or None


def _links(item: ET.Element, link_type: str) -> Optional[List[str]]:
    values = [link.get("value") for link in item.findall(f'link[@type="{link_type}"]') if link.get("value")]
    return values or None


def parse_search_results(content: bytes, limit: Optional[int] = None) -> List[SearchResult]:
    """
    Parse a /search response.

    Args:
        content: Response body
        limit: Maximum number of results to keep

    Returns:
        Results in document order; items without id or name are skipped
    """
    root = parse_document(content)
    results = []
    for item in root.findall("item"):
        if limit is not None and len(results) >= limit:
            break
        bgg_id = _to_id(item.get("id"))
        name_elem = item.find('name[@type="primary"]')
        if name_elem is None:
            name_elem = item.find("name")
        name = decode_html(_value(name_elem))
        if bgg_id is None or not name:
            logger.debug(f"Skipping search hit without id or name: {ET.tostring(item)[:120]!r}")
            continue
        results.append(SearchResult(
            bgg_id=bgg_id,
            name=name,
            year_published=_to_int(_value(item.find("yearpublished")), zero_is_unset=True),
        ))
    return results


def parse_game_details(content: bytes, bgg_id: Optional[int] = None) -> GameDetails:
    """
    Parse a /thing response into GameDetails.

    Args:
        content: Response body
        bgg_id: Requested id; when given, the matching item is preferred

    Raises:
        NotFound: No item in the response
        ParseError: Malformed XML, or no id / primary name
    """
    root = parse_document(content)
    items = root.findall("item")
    if not items:
        raise NotFound(f"BGG item {bgg_id} not found")

    item = items[0]
    if bgg_id is not None:
        for candidate in items:
            if _to_id(candidate.get("id")) == bgg_id:
                item = candidate
                break

    item_id = _to_id(item.get("id"))
    if item_id is None:
        raise ParseError(f"BGG item {bgg_id} has no usable id")

    name_elem = item.find('name[@type="primary"]')
    name = decode_html(_value(name_elem))
    if not name:
        raise ParseError(f"BGG item {item_id} has no primary name")

    stats = item.find("statistics/ratings")
    rating = complexity = None
    if stats is not None:
        rating = _to_float(_value(stats.find("average")))
        complexity = _to_float(_value(stats.find("averageweight")))

    # Expansions point back at the games they expand through inbound links
    inbound = [
        _to_id(link.get("id"))
        for link in item.findall('link[@type="boardgameexpansion"]')
        if link.get("inbound") == "true"
    ]
    inbound = [i for i in inbound if i is not None and i != item_id]
    is_expansion = item.get("type") == "boardgameexpansion" or bool(inbound)

    details = GameDetails(
        bgg_id=item_id,
        name=name,
        year_published=_to_int(_value(item.find("yearpublished")), zero_is_unset=True),
        min_players=_to_int(_value(item.find("minplayers"))),
        max_players=_to_int(_value(item.find("maxplayers"))),
        playing_time=_to_int(_value(item.find("playingtime")), zero_is_unset=True),
        min_age=_to_int(_value(item.find("minage"))),
        description=decode_html(_text(item, "description")),
        image_url=_text(item, "image"),
        thumbnail_url=_text(item, "thumbnail"),
        rating=rating,
        complexity=complexity,
        is_expansion=is_expansion,
        base_game_bgg_id=inbound[0] if inbound else None,
    )
    for attr, link_type in LINK_TYPES.items():
        setattr(details, attr, _links(item, link_type))
    return details


def collection_status(status_elem: Optional[ET.Element], num_plays: int = 0) -> str:
    """Map a collection <status> element onto a library status."""
    if status_elem is None:
        return DEFAULT_STATUS
    flags = {key: status_elem.get(key) == "1" for key in ("own", "fortrade", "preordered", "wishlist", "prevowned")}
    if flags["fortrade"]:
        status = "want_trade_sell"
    elif flags["own"]:
        status = "owned"
    elif flags["preordered"]:
        status = "on_order"
    elif flags["wishlist"]:
        status = "wishlist"
    elif num_plays > 0:
        status = "played_unowned"
    else:
        status = DEFAULT_STATUS
    return status


def parse_collection(content: bytes) -> List[CollectionItem]:
    """
    Parse a /collection response.

    Entries without an object id or name are skipped rather than failing
    the listing; the same game listed twice is kept once.
    """
    root = parse_document(content)
    if root.tag != "items":
        raise ParseError(f"Unexpected collection root element <{root.tag}>")

    entries = []
    seen = set()
    for item in root.findall("item"):
        bgg_id = _to_id(item.get("objectid"))
        name = decode_html(_text(item, "name"))
        if bgg_id is None or not name:
            logger.warning(f"Skipping collection entry without id or name (objectid={item.get('objectid')})")
            continue
        if bgg_id in seen:
            continue
        seen.add(bgg_id)
        num_plays = _to_int(_text(item, "numplays")) or 0
        entries.append(CollectionItem(
            bgg_id=bgg_id,
            name=name,
            year_published=_to_int(_text(item, "yearpublished"), zero_is_unset=True),
            status=collection_status(item.find("status"), num_plays),
            num_plays=num_plays,
        ))
    return entries
