from typing import Any, List, Optional, Sequence, Tuple

from werkzeug.exceptions import BadRequest

MAX_PER_PAGE = 100


def parse_page_args(
    args,
    *,
    default_per_page: int = 20,
    per_page_options: Optional[Sequence[int]] = None,
) -> Tuple[int, int]:
    """
    Read `page` / `per_page` from request args.

    Raises BadRequest for non-integers or values below 1. When
    `per_page_options` is given, an explicit `per_page` must be one of
    them; the default is always accepted.
    """
    explicit = args.get("per_page") is not None
    try:
        page = int(args.get("page", 1))
        per_page = int(args.get("per_page", default_per_page))
    except (TypeError, ValueError) as exc:
        raise BadRequest("page and per_page must be integers") from exc

    if page < 1 or per_page < 1:
        raise BadRequest("page and per_page must be positive")
    if explicit and per_page_options and per_page not in per_page_options:
        raise BadRequest(f"per_page must be one of {list(per_page_options)}")

    return page, min(per_page, MAX_PER_PAGE)


def slice_page(items: List[Any], page: int, per_page: int) -> List[Any]:
    start = (page - 1) * per_page
    return items[start:start + per_page]
