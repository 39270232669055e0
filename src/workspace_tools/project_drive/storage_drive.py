"""Google Drive storage service (Drive API v3 over plain HTTPS).

All requests are blocking and are never retried. HTTP failures are
translated into the errors of ``workspace_tools.project_drive.errors``.
"""

import logging
import re

import requests

from workspace_tools.project_drive.entries import File, Folder
from workspace_tools.project_drive.errors import NotFound, PermissionDenied, TransientServiceError

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FOLDER_URL_TEMPLATE = "https://drive.google.com/drive/folders/{folder_id}"

# 403 responses with these reasons are quota problems, not missing access
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "sharingRateLimitExceeded"}


def get_id_from_url(url):
    """Extract a Drive file or folder id from a Drive URL.

    Args:
        url: Google Drive URL (or a bare id)

    Returns:
        The id, or None if the URL contains nothing that looks like one
    """
    match = re.search(r"[-\w]{25,}", url)
    return match.group(0) if match else None


def _error_reason(response):
    try:
        errors = response.json().get("error", {}).get("errors", [])
    except ValueError:
        return None
    return errors[0].get("reason") if errors else None


def raise_for_google_status(response, what):
    """Raise the matching StorageError for a failed Google API response.

    Args:
        response: requests.Response
        what: Short description of the request, used in the error message
    """
    if response.status_code < 400:
        return

    message = f"{what} failed with HTTP {response.status_code}: {response.text[:200]}"
    if response.status_code == 404:
        raise NotFound(message)
    if response.status_code in (401, 403):
        if _error_reason(response) in RATE_LIMIT_REASONS:
            raise TransientServiceError(message)
        raise PermissionDenied(message)
    raise TransientServiceError(message)


class DriveService:
    """Storage service talking to the Drive v3 REST API with a bearer token."""

    def __init__(self, token, api_url=DRIVE_API_URL, page_size=100):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size

    def _headers(self):
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method, path, what, params=None, json=None):
        url = f"{self.api_url}/{path}"
        params = dict(params or {}, supportsAllDrives="true")
        logger.debug("%s %s params=%s body=%s", method.upper(), url, params, json)
        try:
            if method == "get":
                response = requests.get(url, params=params, headers=self._headers())
            else:
                response = requests.post(url, params=params, json=json, headers=self._headers())
        except requests.RequestException as e:
            raise TransientServiceError(f"{what} failed: {e}") from e
        raise_for_google_status(response, what)
        return response.json()

    def _get_entry(self, entry_id):
        return self._request("get", f"files/{entry_id}", f"Lookup of {entry_id}", params={"fields": "id,name,mimeType,trashed"})

    def get_folder(self, folder_id):
        data = self._get_entry(folder_id)
        if data.get("mimeType") != FOLDER_MIME_TYPE or data.get("trashed"):
            raise NotFound(f"Not an accessible folder: {folder_id}")
        return Folder(data["id"], data["name"])

    def get_file(self, file_id):
        data = self._get_entry(file_id)
        if data.get("mimeType") == FOLDER_MIME_TYPE or data.get("trashed"):
            raise NotFound(f"Not an accessible file: {file_id}")
        return File(data["id"], data["name"])

    def _list_children(self, folder, folders_only):
        """Yield child entries of ``folder`` one page at a time."""
        operator = "=" if folders_only else "!="
        params = {
            "q": f"'{folder.id}' in parents and mimeType {operator} '{FOLDER_MIME_TYPE}' and trashed = false",
            "fields": "nextPageToken,files(id,name)",
            "pageSize": self.page_size,
            "includeItemsFromAllDrives": "true",
        }
        while True:
            data = self._request("get", "files", f"Listing of {folder.name!r}", params=params)
            yield from data.get("files", [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return
            params = dict(params, pageToken=page_token)

    def list_folders(self, folder):
        for entry in self._list_children(folder, folders_only=True):
            yield Folder(entry["id"], entry["name"])

    def list_files(self, folder):
        for entry in self._list_children(folder, folders_only=False):
            yield File(entry["id"], entry["name"])

    def create_folder(self, parent, name):
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent.id]}
        data = self._request("post", "files", f"Creation of folder {name!r}", params={"fields": "id,name"}, json=body)
        return Folder(data["id"], data["name"])

    def copy_file(self, file, destination, name):
        body = {"name": name, "parents": [destination.id]}
        data = self._request("post", f"files/{file.id}/copy", f"Copy of {file.name!r}", params={"fields": "id,name"}, json=body)
        return File(data["id"], data["name"])

    def folder_url(self, folder_id):
        return FOLDER_URL_TEMPLATE.format(folder_id=folder_id)
