from walgarchive.archive.module import WalgArchiveModule

__all__ = ["WalgArchiveModule"]
