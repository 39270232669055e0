"""Storage service backed by a directory tree on the local filesystem.

Folder and file ids are absolute paths. Useful for mounted shared drives and
for trying out a template without touching the hosted service.
"""

import contextlib
import logging
import os
import shutil
from pathlib import Path

from workspace_tools.project_drive.entries import File, Folder
from workspace_tools.project_drive.errors import InvalidName, NameConflict, NotFound, PermissionDenied, TransientServiceError

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _translate_os_errors(path):
    try:
        yield
    except FileExistsError as e:
        raise NameConflict(f"Entry already exists: {path}") from e
    except FileNotFoundError as e:
        raise NotFound(f"No such folder or file: {path}") from e
    except NotADirectoryError as e:
        raise NotFound(f"Not a folder: {path}") from e
    except PermissionError as e:
        raise PermissionDenied(f"Permission denied: {path}") from e
    except OSError as e:
        raise TransientServiceError(f"Filesystem error on {path}: {e}") from e


class LocalDriveService:
    """Folders are directories and files are regular files under ``root``."""

    def __init__(self, root):
        self.root = os.path.abspath(root)

    def _inside_root(self, path):
        return os.path.commonpath([self.root, path]) == self.root

    def _path(self, entry_id):
        path = os.path.abspath(os.path.join(self.root, entry_id))
        if not self._inside_root(path):
            raise NotFound(f"Outside of storage root: {entry_id}")
        return path

    def _child_path(self, parent, name):
        """Path of a new entry ``name`` directly inside ``parent``."""
        separators = {os.sep, os.altsep} - {None}
        if not name or name in (".", "..") or any(sep in name for sep in separators):
            raise InvalidName(f"Name cannot be stored as a single local entry: {name!r}")
        path = os.path.abspath(os.path.join(parent.id, name))
        if not self._inside_root(path):
            raise InvalidName(f"Name leads outside of storage root: {name!r}")
        return path

    def get_folder(self, folder_id):
        path = self._path(folder_id)
        if not os.path.isdir(path):
            raise NotFound(f"Folder does not exist: {folder_id}")
        return Folder(path, os.path.basename(path))

    def get_file(self, file_id):
        path = self._path(file_id)
        if not os.path.isfile(path):
            raise NotFound(f"File does not exist: {file_id}")
        return File(path, os.path.basename(path))

    def _scan(self, folder, want_dirs):
        # Symlinked directories are listed as neither folders nor files, so a
        # link back up the tree cannot make the clone recurse forever
        with _translate_os_errors(folder.id), os.scandir(folder.id) as entries:
            for entry in entries:
                if want_dirs and entry.is_dir(follow_symlinks=False):
                    yield entry
                elif not want_dirs and entry.is_file():
                    yield entry

    def list_folders(self, folder):
        """Yield the direct subfolders of ``folder`` as they are read from disk."""
        for entry in self._scan(folder, want_dirs=True):
            yield Folder(entry.path, entry.name)

    def list_files(self, folder):
        """Yield the files directly inside ``folder``."""
        for entry in self._scan(folder, want_dirs=False):
            yield File(entry.path, entry.name)

    def create_folder(self, parent, name):
        path = self._child_path(parent, name)
        with _translate_os_errors(path):
            os.mkdir(path)
        logger.debug("Created directory: %s", path)
        return Folder(path, name)

    def copy_file(self, file, destination, name):
        path = self._child_path(destination, name)
        if os.path.lexists(path):
            raise NameConflict(f"Entry already exists: {path}")
        with _translate_os_errors(path):
            shutil.copy2(file.id, path)
        logger.debug("Copied %s to %s", file.id, path)
        return File(path, name)

    def folder_url(self, folder_id):
        return Path(self._path(folder_id)).as_uri()
