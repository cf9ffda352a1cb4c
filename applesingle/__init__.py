"""A pure Python, cross-platform library/tool for reading AppleSingle files, which bundle a classic Macintosh file's data fork, resource fork and Finder metadata into a single file."""

# To release a new version:
# * Remove the .dev suffix from the version number in this file.
# * Update the changelog in the README.rst (rename the "next version" section to the correct version number).
# * Remove the ``dist`` directory (if it exists) to clean up any old release files.
# * Run ``python3 setup.py sdist bdist_wheel`` to build the release files.
# * Run ``python3 -m twine check dist/*`` to check the release files.
# * Tag the release commit with the version number, prefixed with a "v" (e. g. version 1.2.3 is tagged as v1.2.3).
# * Upload the release files to PyPI using ``python3 -m twine upload dist/*``.

# After releasing:
# * Bump the version number in this file to the next version and add a .dev suffix.
# * Add a new empty section for the next version to the README.rst changelog.

__version__ = "0.1.0.dev"

__all__ = [
	"Archive",
	"Comment",
	"Date",
	"Dates",
	"DiscardHandler",
	"EntryType",
	"ExtendedFinderInfo",
	"Filename",
	"FinderFlags",
	"FinderInfo",
	"Fork",
	"ForkKind",
	"FormatMismatchError",
	"InvalidAppleSingleError",
	"MacInfo",
	"MissingFieldError",
	"OutOfOrderSegmentError",
	"Point",
	"SeekableArchive",
	"Segment",
	"SinkHandler",
	"SubstructureError",
	"TruncatedError",
	"open",
	"parse",
	"parse_seekable",
]

from . import api
from .api import DiscardHandler, SinkHandler, parse, parse_seekable
from .archive import Archive, Comment, Filename, SeekableArchive
from .common import EntryType, Fork, ForkKind, FormatMismatchError, InvalidAppleSingleError, MissingFieldError, OutOfOrderSegmentError, Segment, SubstructureError, TruncatedError
from .dates import Date, Dates
from .finder import ExtendedFinderInfo, FinderFlags, FinderInfo, MacInfo, Point

# noinspection PyShadowingBuiltins
open = api.open
