"""
Fixed paths of the Emojify service exercised by the workflow.

The workflow mimics what a browser does when a person opens the Emojify
page and submits a picture: load the page and its static assets, POST a
picture URL to the API, poll the job, then fetch the cached result.
"""

from __future__ import annotations

from urllib.parse import quote

# Fetched concurrently, the way a browser loads a page and its assets.
STATIC_ASSET_PATHS: tuple[str, ...] = (
    "/",
    "/config/env.js",
    "/images/emojify_small.png",
    "/images/consul.png",
    "/images/emojify.png",
)

# Pictures hosted by the service itself; one is submitted per iteration.
PICTURE_PATHS: tuple[str, ...] = (
    "/pictures/1.jpg",
    "/pictures/2.jpg",
    "/pictures/3.jpg",
    "/pictures/4.jpg",
    "/pictures/5.jpg",
)

SUBMIT_PATH = "/v2/api/emojify/"
STATUS_PATH_TEMPLATE = "/v2/api/emojify/{job_id}"
CACHE_PATH_TEMPLATE = "/v2/api/cache/{job_id}"


def join_url(base_uri: str, path: str) -> str:
    """Append *path* to *base_uri* without doubling or dropping the slash."""
    return base_uri.rstrip("/") + "/" + path.lstrip("/")


def status_path(job_id: str) -> str:
    return STATUS_PATH_TEMPLATE.format(job_id=quote(job_id, safe=""))


def cache_path(job_id: str) -> str:
    return CACHE_PATH_TEMPLATE.format(job_id=quote(job_id, safe=""))
