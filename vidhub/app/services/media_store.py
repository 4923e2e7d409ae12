"""
services/media_store.py — Avatar / cover image storage.

Narrow interface used by user_service:
    upload(file) -> UploadedMedia(url, public_id)
    delete(public_id) -> None

Implementations:
  - CloudinaryMediaStore : production; uploads through the Cloudinary SDK.
  - LocalMediaStore      : development and tests; writes under MEDIA_ROOT.

Both raise MediaStoreError for any provider failure so callers only need one
except clause. The factory stores the active instance in
app.extensions["media_store"].
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import cloudinary
import cloudinary.uploader
from flask import Flask, current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class MediaStoreError(Exception):
    """Upload or delete failed at the storage provider."""


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str


class LocalMediaStore:
    """Stores files on local disk under `root`, served from `base_url`."""

    def __init__(self, root: str | Path, base_url: str = "/media") -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        # Created up front so upload/delete never deal with a missing dir.
        self.root.mkdir(parents=True, exist_ok=True)
        logger.debug("LocalMediaStore initialized, root=%s", self.root)

    def upload(self, file: FileStorage) -> UploadedMedia:
        suffix = Path(secure_filename(file.filename or "")).suffix.lower()
        public_id = f"{uuid.uuid4().hex}{suffix}"
        try:
            file.save(self.root / public_id)
        except OSError as exc:
            raise MediaStoreError(f"could not store {file.filename!r}") from exc
        logger.info("Stored media %s", public_id)
        return UploadedMedia(url=f"{self.base_url}/{public_id}", public_id=public_id)

    def delete(self, public_id: str) -> None:
        # public ids are bare file names; anything else is not ours to delete.
        if not public_id or Path(public_id).name != public_id:
            raise MediaStoreError(f"invalid media id {public_id!r}")
        try:
            (self.root / public_id).unlink(missing_ok=True)
        except OSError as exc:
            raise MediaStoreError(f"could not delete {public_id!r}") from exc
        logger.info("Deleted media %s", public_id)


class CloudinaryMediaStore:
    """Uploads to Cloudinary; `folder` groups assets per deployment."""

    def __init__(
            self,
            cloud_name: str,
            api_key: str,
            api_secret: str,
            folder: str | None = None,
    ) -> None:
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )
        self.folder = folder

    def upload(self, file: FileStorage) -> UploadedMedia:
        options = {"resource_type": "auto"}
        if self.folder:
            options["folder"] = self.folder
        try:
            result = cloudinary.uploader.upload(file.stream, **options)
        except Exception as exc:
            raise MediaStoreError(f"cloudinary upload failed for {file.filename!r}") from exc

        url = result.get("secure_url") or result.get("url")
        if not url or not result.get("public_id"):
            raise MediaStoreError("cloudinary upload returned no url")
        logger.info("Uploaded media %s", result["public_id"])
        return UploadedMedia(url=url, public_id=result["public_id"])

    def delete(self, public_id: str) -> None:
        try:
            result = cloudinary.uploader.destroy(public_id)
        except Exception as exc:
            raise MediaStoreError(f"cloudinary delete failed for {public_id!r}") from exc
        # "not found" is fine: the asset is already gone.
        if result.get("result") not in ("ok", "not found"):
            raise MediaStoreError(f"cloudinary delete returned {result!r}")
        logger.info("Deleted media %s", public_id)


def init_media_store(app: Flask) -> None:
    """Builds the configured media store and attaches it to the app."""
    backend = app.config.get("MEDIA_BACKEND", "local")
    if backend == "cloudinary":
        store = CloudinaryMediaStore(
            cloud_name=app.config["CLOUDINARY_CLOUD_NAME"],
            api_key=app.config["CLOUDINARY_API_KEY"],
            api_secret=app.config["CLOUDINARY_API_SECRET"],
            folder=app.config.get("CLOUDINARY_FOLDER"),
        )
    elif backend == "local":
        store = LocalMediaStore(
            root=app.config["MEDIA_ROOT"],
            base_url=app.config.get("MEDIA_BASE_URL", "/media"),
        )
    else:
        raise ValueError(f"Unknown MEDIA_BACKEND {backend!r}")
    app.extensions["media_store"] = store


def get_media_store():
    return current_app.extensions["media_store"]
