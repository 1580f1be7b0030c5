"""
Word search HTTP endpoint.

Facet parameters are comma-separated lists; each marker kind is its own
parameter (``style_markers=formal,jerga``).
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, status

from dictionary_search import __version__
from dictionary_search.exceptions import StoreError
from dictionary_search.filters import parse_list_param
from dictionary_search.models import MarkerKind, SearchQuery
from dictionary_search.search import SearchEngine

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUE_VALUES


def create_router(engine: SearchEngine) -> APIRouter:
    """Build the ``/words`` router bound to *engine*."""
    router = APIRouter(prefix="/words", tags=["search"])

    @router.get("/search")
    def search_words(
        request: Request,
        text: Optional[str] = None,
        categories: Optional[str] = None,
        origins: Optional[str] = None,
        letters: Optional[str] = None,
        dictionaries: Optional[str] = None,
        assigned_to: Optional[str] = None,
        status_filter: Optional[str] = Query(None, alias="status"),
        drafts: Optional[str] = None,
        page: Optional[str] = None,
        page_size: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Search entries by lemma text and facets.

        Returns one page of ranked results and the total number of matches.
        Page and page size are clamped, so malformed values never fail.
        """
        params = request.query_params
        markers = {
            kind.value: parse_list_param(params.get(kind.value))
            for kind in MarkerKind
            if params.get(kind.value)
        }
        query = SearchQuery(
            text=text,
            categories=parse_list_param(categories),
            origins=parse_list_param(origins),
            letters=parse_list_param(letters),
            dictionaries=parse_list_param(dictionaries),
            markers=markers,
            assigned_to=parse_list_param(assigned_to),
            status=status_filter,
            include_drafts=_flag(drafts),
            page=page,
            page_size=page_size,
        )

        try:
            result = engine.search(query)
        except StoreError as e:
            logger.error(f"Word search failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Search failed",
            )

        logger.info(
            f"Search text={text!r} returned {len(result.results)} of {result.total}"
        )
        return {
            "results": [dataclasses.asdict(r) for r in result.results],
            "total": result.total,
        }

    return router


def create_app(engine: SearchEngine) -> FastAPI:
    """Create the FastAPI application serving *engine*."""
    app = FastAPI(title="dictionary-search", version=__version__)
    app.include_router(create_router(engine))
    return app
