from __future__ import annotations

import io
import logging
import time
import zipfile
from pathlib import Path, PurePosixPath
from typing import Any

import httpx

from ..contracts import ExtractConfig, RemoteServiceConfig, RenderUnit
from .base import RenderEngine, RenderFailedError

logger = logging.getLogger(__name__)

FIGURES_DIR = "figures"
_IMAGE_MEMBER_SUFFIXES = (".png", ".jpg", ".jpeg")
_DONE_STATUSES = {"done"}
_FAILED_STATUSES = {"failed"}


def _auth_hint(status_code: int) -> str:
    if status_code in (401, 403):
        return " (Authentication failed: check the client id and client secret.)"
    return ""


class AdobePdfServicesEngine(RenderEngine):
    """
    Figure renditions via the Adobe PDF Services extract API.

    Flow: token -> upload asset -> extract job (text + figure renditions) ->
    poll job -> download result zip -> unpack `figures/*` into the workspace.
    The API always processes the whole document; page selection is ignored.
    """

    def __init__(
        self,
        *,
        settings: RemoteServiceConfig,
        transport: httpx.BaseTransport | None = None,
        sleep=time.sleep,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def probe(cls, config: ExtractConfig) -> AdobePdfServicesEngine | None:
        # The extract API returns figure renditions, never whole-page rasters.
        if config.render_unit != RenderUnit.FIGURE:
            return None
        if not config.remote.has_credentials:
            return None
        return cls(settings=config.remote)

    def backend_id(self) -> str:
        return "adobe_pdf_services"

    def render(
        self,
        *,
        pdf_file: Path,
        out_dir: Path,
        pages: list[int],
        dpi: int,
        timeout_s: float,
    ) -> dict[str, Any]:
        _ = (pages, dpi)
        out_dir.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + timeout_s

        with httpx.Client(
            base_url=self.settings.base_url.rstrip("/"),
            timeout=self.settings.request_timeout_s,
            transport=self._transport,
        ) as client:
            try:
                headers = self._authenticate(client)
                asset_id = self._upload(client, headers=headers, pdf_file=pdf_file)
                job_url = self._submit_extract(client, headers=headers, asset_id=asset_id)
                download_uri = self._wait_for_job(client, headers=headers, job_url=job_url, deadline=deadline)
                archive = self._download(client, download_uri)
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                raise RenderFailedError(
                    f"PDF Services request failed with HTTP {status}{_auth_hint(status)}",
                    detail={"status_code": status, "url": str(e.request.url), "body": e.response.text[-2000:]},
                ) from e
            except httpx.HTTPError as e:
                raise RenderFailedError(
                    f"PDF Services request failed: {e}",
                    detail={"error": repr(e)},
                ) from e

        written = self._unpack_figures(archive, out_dir=out_dir)
        return {
            "backend": self.backend_id(),
            "backend_version": self.backend_version(),
            "render_unit": RenderUnit.FIGURE.value,
            "units_written": written,
            "page_selection_applied": False,
        }

    def _authenticate(self, client: httpx.Client) -> dict[str, str]:
        resp = client.post(
            "/token",
            data={"client_id": self.settings.client_id, "client_secret": self.settings.client_secret},
        )
        resp.raise_for_status()
        token = resp.json().get("access_token")
        if not token:
            raise RenderFailedError("PDF Services token response did not contain an access token")
        return {"Authorization": f"Bearer {token}", "x-api-key": str(self.settings.client_id)}

    def _upload(self, client: httpx.Client, *, headers: dict[str, str], pdf_file: Path) -> str:
        resp = client.post("/assets", headers=headers, json={"mediaType": "application/pdf"})
        resp.raise_for_status()
        body = resp.json()
        upload_uri = body.get("uploadUri")
        asset_id = body.get("assetID")
        if not upload_uri or not asset_id:
            raise RenderFailedError("PDF Services asset response is missing uploadUri/assetID", detail={"body": body})

        put = client.put(upload_uri, content=pdf_file.read_bytes(), headers={"Content-Type": "application/pdf"})
        put.raise_for_status()
        return str(asset_id)

    def _submit_extract(self, client: httpx.Client, *, headers: dict[str, str], asset_id: str) -> str:
        resp = client.post(
            "/operation/extractpdf",
            headers=headers,
            json={
                "assetID": asset_id,
                "elementsToExtract": ["text"],
                "renditionsToExtract": ["figures"],
            },
        )
        resp.raise_for_status()
        location = resp.headers.get("location")
        if not location:
            raise RenderFailedError("PDF Services did not return a job location")
        return location

    def _wait_for_job(self, client: httpx.Client, *, headers: dict[str, str], job_url: str, deadline: float) -> str:
        while True:
            resp = client.get(job_url, headers=headers)
            resp.raise_for_status()
            body = resp.json()
            status = str(body.get("status", "")).lower()

            if status in _DONE_STATUSES:
                resource = body.get("resource") or {}
                download_uri = resource.get("downloadUri")
                if not download_uri:
                    raise RenderFailedError("PDF Services job finished without a result archive", detail={"body": body})
                return str(download_uri)
            if status in _FAILED_STATUSES:
                error = body.get("error") or {}
                raise RenderFailedError(
                    f"PDF Services extract job failed: {error.get('message') or 'unknown error'}",
                    detail={"error": error},
                )
            if time.monotonic() >= deadline:
                raise RenderFailedError(
                    "PDF Services extract job did not finish before the timeout",
                    detail={"last_status": status},
                )
            self._sleep(self.settings.poll_interval_s)

    def _download(self, client: httpx.Client, download_uri: str) -> bytes:
        resp = client.get(download_uri)
        resp.raise_for_status()
        return resp.content

    def _unpack_figures(self, archive: bytes, *, out_dir: Path) -> int:
        try:
            zf = zipfile.ZipFile(io.BytesIO(archive))
        except zipfile.BadZipFile as e:
            raise RenderFailedError("PDF Services result is not a valid zip archive") from e

        written = 0
        with zf:
            for info in zf.infolist():
                member = PurePosixPath(info.filename)
                if info.is_dir() or len(member.parts) < 2 or member.parts[0] != FIGURES_DIR:
                    continue
                # Only direct children of figures/; nested members could share a basename.
                if len(member.parts) != 2:
                    logger.warning("Skipping nested figure member %s", info.filename)
                    continue
                if member.suffix.lower() not in _IMAGE_MEMBER_SUFFIXES:
                    continue
                (out_dir / member.name).write_bytes(zf.read(info))
                written += 1
        return written
