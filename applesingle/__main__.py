import argparse
import logging
import pathlib
import sys
import textwrap
import typing

from . import __version__, api, archive, common

# The encoding to use when rendering bytes as text (in names, comments, four-char codes, etc.).
_TEXT_ENCODING = "MacRoman"

_FINDER_COLORS = ["none", "orange", "red", "pink", "blue", "purple", "green", "gray"]


def is_printable(char: str) -> bool:
	"""Determine whether a character is printable for our purposes.
	
	We mainly use Python's definition of printable (i. e. everything that Unicode does not consider a separator or "other" character). However, we also treat U+F8FF as printable, which is the private use codepoint used for the Apple logo character.
	"""
	
	return char.isprintable() or char == "\uf8ff"


def bytes_escape(bs: bytes, *, quote: typing.Optional[str] = None) -> str:
	"""Convert a bytestring to a string (using _TEXT_ENCODING), with non-printable characters hex-escaped.
	
	(We implement our own escaping mechanism here to not depend on Python's str or bytes repr.)
	"""
	
	out = []
	for byte, char in zip(bs, bs.decode(_TEXT_ENCODING)):
		if char in {quote, "\\"}:
			out.append(f"\\{char}")
		elif is_printable(char):
			out.append(char)
		else:
			out.append(f"\\x{byte:02x}")
	
	return "".join(out)


def describe_entry_text(text: typing.Optional[bytes]) -> str:
	if text is None:
		return "(none)"
	else:
		name = bytes_escape(text, quote='"')
		return f'"{name}"'


def format_archive_info(ar: archive.Archive) -> typing.Iterable[str]:
	yield f"Format: {ar.format}"
	yield f"Real name: {describe_entry_text(ar.name)}"
	yield f"Comment: {describe_entry_text(ar.comment)}"
	
	if ar.dates is None:
		yield "Dates: (none)"
	else:
		yield "Dates:"
		yield f"\tCreated: {ar.dates.create}"
		yield f"\tModified: {ar.dates.modify}"
		yield f"\tBacked up: {ar.dates.backup}"
		yield f"\tAccessed: {ar.dates.access}"
	
	if ar.finder_info is None:
		yield "Finder info: (none)"
	else:
		finf = ar.finder_info
		file_type = bytes_escape(finf.type, quote="'")
		creator = bytes_escape(finf.creator, quote="'")
		yield "Finder info:"
		yield f"\tType: '{file_type}'"
		yield f"\tCreator: '{creator}'"
		flag_names = finf.flags.names()
		yield f"\tFlags: {finf.flags.value:#06x} ({' | '.join(flag_names) if flag_names else 'none'})"
		yield f"\tColor: {finf.flags.color} ({_FINDER_COLORS[finf.flags.color]})"
		yield f"\tLocation: ({finf.location.vertical}, {finf.location.horizontal})"
		yield f"\tFolder: {finf.folder}"
	
	if ar.extended_finder_info is not None:
		fxinf = ar.extended_finder_info
		yield "Extended Finder info:"
		yield f"\tIcon ID: {fxinf.icon_id}"
		yield f"\tName script: {'unspecified' if fxinf.filename_script is None else fxinf.filename_script}"
		yield f"\tExtended flags: {fxinf.extended_flags:#04x}"
		yield f"\tComment ID: {fxinf.comment_id}"
		yield f"\tPut away from: {fxinf.put_away_from}"
	
	if ar.mac_info is None:
		yield "Macintosh file info: (none)"
	else:
		yield f"Macintosh file info: {ar.mac_info.value:#010x} ({ar.mac_info})"


def make_argument_parser(*, description: str, **kwargs: typing.Any) -> argparse.ArgumentParser:
	"""Create an argparse.ArgumentParser with some slightly modified defaults.
	
	This function is used to ensure that all subcommands use the same base configuration for their ArgumentParser.
	"""
	
	ap = argparse.ArgumentParser(
		formatter_class=argparse.RawDescriptionHelpFormatter,
		description=description,
		allow_abbrev=False,
		add_help=False,
		**kwargs,
	)
	
	ap.add_argument("--help", action="help", help="Display this help message and exit")
	
	return ap


def add_input_file_args(ap: argparse.ArgumentParser) -> None:
	"""Define common options/arguments for specifying an input AppleSingle file."""
	
	ap.add_argument("file", help="The AppleSingle file to read, or - for stdin.")
	ap.add_argument("--debug", action="store_true", help="Log details about the decoding process to stderr.")


def configure_logging(debug: bool) -> None:
	logging.basicConfig(
		format="%(name)s: %(levelname)s: %(message)s",
		level=logging.DEBUG if debug else logging.WARNING,
	)


def decode_or_exit(func: typing.Callable[[], typing.Any]) -> typing.Any:
	"""Call func and turn decoding errors into an error message and exit status 1."""
	
	try:
		return func()
	except common.InvalidAppleSingleError as e:
		print(f"Could not decode as AppleSingle: {e}", file=sys.stderr)
		sys.exit(1)


def open_input(file: str) -> typing.BinaryIO:
	if file == "-":
		return sys.stdin.buffer
	else:
		return open(file, "rb")


def do_info(prog: str, args: typing.List[str]) -> typing.NoReturn:
	"""Display the metadata stored in an AppleSingle file."""
	
	ap = make_argument_parser(
		prog=prog,
		description="""
Display the metadata stored in an AppleSingle file: real name, comment, dates,
Finder info and Macintosh file info.

The file is read in a single pass, so it can also be read from a pipe.
""",
	)
	add_input_file_args(ap)
	
	ns = ap.parse_args(args)
	configure_logging(ns.debug)
	
	stream = open_input(ns.file)
	try:
		ar = decode_or_exit(lambda: api.parse(stream))
	finally:
		if stream is not sys.stdin.buffer:
			stream.close()
	
	for line in format_archive_info(ar):
		print(line)
	
	sys.exit(0)


def do_list(prog: str, args: typing.List[str]) -> typing.NoReturn:
	"""List the entries in an AppleSingle file."""
	
	ap = make_argument_parser(
		prog=prog,
		description="""
List the entry table of an AppleSingle file, in the order in which the entries
are stored in the file.
""",
	)
	add_input_file_args(ap)
	
	ns = ap.parse_args(args)
	configure_logging(ns.debug)
	
	stream = open_input(ns.file)
	try:
		table = decode_or_exit(lambda: api.read_header(stream))
	finally:
		if stream is not sys.stdin.buffer:
			stream.close()
	
	segments = table.by_offset()
	print(f"{len(segments)} entries:")
	for segment in segments:
		print(segment.describe())
	
	sys.exit(0)


def do_extract(prog: str, args: typing.List[str]) -> typing.NoReturn:
	"""Copy a fork out of an AppleSingle file."""
	
	ap = make_argument_parser(
		prog=prog,
		description="""
Copy the data fork or resource fork of an AppleSingle file into a separate file.

This subcommand can be used in a shell pipeline by passing - as the input and
output file name, i. e. "%(prog)s --fork data - -".
""",
	)
	
	ap.add_argument("--fork", choices=["data", "rsrc"], default="data", help="Which fork to extract. Default: %(default)s")
	add_input_file_args(ap)
	ap.add_argument("output_file", help="The file to which to write the fork data, or - for stdout.")
	
	ns = ap.parse_args(args)
	configure_logging(ns.debug)
	
	if ns.output_file == "-":
		out_stream = sys.stdout.buffer
		close_out_stream = False
	else:
		out_stream = open(ns.output_file, "wb")
		close_out_stream = True
	
	in_stream = open_input(ns.file)
	try:
		if ns.fork == "data":
			handler = api.SinkHandler(data=out_stream)
		elif ns.fork == "rsrc":
			handler = api.SinkHandler(rsrc=out_stream)
		else:
			raise AssertionError(f"Unhandled --fork: {ns.fork!r}")
		
		decode_or_exit(lambda: api.parse(in_stream, handler))
	finally:
		if in_stream is not sys.stdin.buffer:
			in_stream.close()
		if close_out_stream:
			out_stream.close()
	
	sys.exit(0)


SUBCOMMANDS = {
	"info": do_info,
	"list": do_list,
	"extract": do_extract,
}


def format_subcommands_help() -> str:
	"""Return a formatted help text describing the availble subcommands.
	
	Because we do not use argparse's native support for subcommands (see comments in main function), the main ArgumentParser's help does not include any information about the subcommands by default, so we have to format and add it ourselves.
	"""
	
	# The list of subcommands is formatted using a "fake" ArgumentParser, which is never actually used to parse any arguments.
	# The options are chosen so that the help text will only include the subcommands list and epilog, but no usage or any other arguments.
	fake_ap = argparse.ArgumentParser(
		usage=argparse.SUPPRESS,
		epilog=textwrap.dedent("""
		Most of the above subcommands take additional arguments. Run a subcommand with
		the option --help for help about the options understood by that subcommand.
		"""),
		add_help=False,
		formatter_class=argparse.RawDescriptionHelpFormatter,
	)
	
	# The subcommands are added as positional arguments to a custom group with the title "subcommands".
	fake_group = fake_ap.add_argument_group(title="subcommands")
	
	for name, func in SUBCOMMANDS.items():
		# Each command's short description is taken from the implementation function's docstring.
		fake_group.add_argument(name, help=func.__doc__)
	
	return fake_ap.format_help()


def main() -> typing.NoReturn:
	"""Main function of the CLI.
	
	This function is a valid setuptools entry point. Arguments are passed in sys.argv, and every execution path ends with a sys.exit call.
	"""
	
	prog = pathlib.PurePath(sys.argv[0]).name
	args = sys.argv[1:]
	
	# The main function parses the command-line arguments enough to determine which subcommand to call, but leaves parsing of the rest of the arguments to the subcommand itself.
	ap = make_argument_parser(
		prog=prog,
		# Custom usage string to make "subcommand ..." show up in the usage, but not as "positional arguments" in the main help text.
		usage=f"{prog} (--help | --version | subcommand ...)",
		description="""
%(prog)s is a tool for reading AppleSingle files, which bundle the data fork,
resource fork and Finder metadata of a Classic Mac OS file into one file.
Creating AppleSingle files is not supported.

Note: This tool is intended for human users. The output format is not
machine-readable and may change at any time. Automated scripts and programs
should use the Python API provided by the applesingle library, which this tool
is a part of.
""",
		# The list of subcommands is shown in the epilog so that it appears under the list of optional arguments.
		epilog=format_subcommands_help(),
	)
	
	ap.add_argument("--version", action="version", version=__version__, help="Display version information and exit.")
	
	# The help of these arguments is set to argparse.SUPPRESS so that they do not cause a mostly useless "positional arguments" list to appear.
	ap.add_argument("subcommand", help=argparse.SUPPRESS)
	ap.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
	
	if not args:
		print(f"{prog}: Missing subcommand.", file=sys.stderr)
		ap.print_help()
		sys.exit(2)
	
	ns = ap.parse_args(args)
	
	try:
		# Check if the subcommand is valid.
		subcommand_func = SUBCOMMANDS[ns.subcommand]
	except KeyError:
		# Subcommand is invalid, display an error.
		print(f"{prog}: Unknown subcommand: {ns.subcommand}", file=sys.stderr)
		print(f"Run {prog} --help for a list of available subcommands.", file=sys.stderr)
		sys.exit(2)
	else:
		# Subcommand is valid, call the looked up subcommand and pass on further arguments.
		subcommand_func(f"{prog} {ns.subcommand}", ns.args)

if __name__ == "__main__":
	sys.exit(main())
