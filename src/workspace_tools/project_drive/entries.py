from collections import namedtuple

# Handles returned by the storage services. ``id`` is opaque to the cloner.
Folder = namedtuple("Folder", ["id", "name"])
File = namedtuple("File", ["id", "name"])
