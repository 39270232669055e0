"""Recursive cloning of a template folder tree into a new project folder.

The functions here only talk to a storage service object (see
``storage_local.LocalDriveService`` and ``storage_drive.DriveService``) and
take every id and the placeholder token as explicit arguments.
"""

import logging

from workspace_tools.project_drive.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "[TEMPLATE]"


class CloneProgress:
    """Counts of entries written by a clone, successful or not."""

    def __init__(self):
        self.files_copied = 0
        self.folders_created = 0

    def __repr__(self):
        return f"CloneProgress(files_copied={self.files_copied}, folders_created={self.folders_created})"


def substitute_placeholder(name, token, replacement):
    """Replace every occurrence of ``token`` in ``name`` with ``replacement``.

    The token is matched literally (``[TEMPLATE]`` is not a character class)
    in a single left-to-right pass, so text coming from ``replacement`` is
    never scanned again.

    Args:
        name: File name to rewrite
        token: Placeholder literal
        replacement: Text to put in place of each occurrence

    Returns:
        The rewritten name, or ``name`` itself when the token does not occur
    """
    if not token or token not in name:
        return name
    return name.replace(token, replacement)


def resolve_folder(storage, parent_id, name):
    """Return the id of the child folder ``name`` under ``parent_id``, creating it if absent.

    Names are compared exactly. If several siblings share the name, the first
    one listed by the storage service wins.

    Args:
        storage: Storage service
        parent_id: Id of the parent folder
        name: Desired child folder name

    Returns:
        Id of the existing or newly created folder
    """
    parent = storage.get_folder(parent_id)

    for folder in storage.list_folders(parent):
        if folder.name == name:
            logger.info('Folder "%s" already exists', name)
            return folder.id

    logger.info('Creating new folder: "%s"', name)
    return storage.create_folder(parent, name).id


def clone_tree(storage, source_id, destination_id, replacement, token=DEFAULT_PLACEHOLDER):
    """Recreate the tree under ``source_id`` inside ``destination_id``.

    Files are copied with ``token`` replaced by ``replacement`` in their
    names. Subfolders keep their names and are always created, never looked
    up, so running this twice against one destination duplicates everything.

    A storage failure aborts the clone immediately. Entries written before
    the failure stay in place, and the raised error carries a ``progress``
    attribute with the counts.

    Args:
        storage: Storage service
        source_id: Id of the template folder
        destination_id: Id of the (normally empty) destination folder
        replacement: Text substituted for the placeholder in file names
        token: Placeholder literal

    Returns:
        CloneProgress with the number of files copied and folders created
    """
    progress = CloneProgress()
    try:
        source = storage.get_folder(source_id)
        destination = storage.get_folder(destination_id)
        _copy_folder_contents(storage, source, destination, replacement, token, progress)
    except StorageError as e:
        e.progress = progress
        logger.error("Clone aborted after %s: %s", progress, e)
        raise
    return progress


def _copy_folder_contents(storage, source, destination, replacement, token, progress):
    logger.info('Copying contents from "%s" to "%s"', source.name, destination.name)

    for file in storage.list_files(source):
        new_name = substitute_placeholder(file.name, token, replacement)
        logger.info('Copying file: "%s" as "%s"', file.name, new_name)
        storage.copy_file(file, destination, new_name)
        progress.files_copied += 1

    for subfolder in storage.list_folders(source):
        logger.info('Creating subfolder: "%s"', subfolder.name)
        new_subfolder = storage.create_folder(destination, subfolder.name)
        progress.folders_created += 1
        _copy_folder_contents(storage, subfolder, new_subfolder, replacement, token, progress)
