import argparse
import logging
import sys
from pathlib import Path

from .citation_store import CitationFileStore
from .config import load_settings
from .engine.models import ReferenceMode
from .engine.service import CitationService
from .host import CiteWideCommands, ConsoleNotifier, TextDocument
from .url_citation import UrlCitationService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert numbered citations to footnote syntax")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="Show citation groups in a file")
    p_list.add_argument("path")

    p_conv = sub.add_parser("convert", help="Convert citations to [^id] footnotes")
    p_conv.add_argument("path")
    p_conv.add_argument("--key", help="Convert only this citation (e.g. 3 or ^ab12cd)")
    p_conv.add_argument("--synthesize", action="store_true", help="Move reference text into a generated block at the end")
    p_conv.add_argument("--trailing", action="store_true", help="Treat the last occurrence of a citation as its reference")
    p_conv.add_argument("--in-place", "-i", action="store_true", help="Write back to the file instead of stdout")

    p_punct = sub.add_parser("punctuate", help="Move citations after punctuation and space adjacent markers")
    p_punct.add_argument("path")
    p_punct.add_argument("--in-place", "-i", action="store_true")

    p_colon = sub.add_parser("add-colons", help="Add the colon to footnote definitions missing one")
    p_colon.add_argument("path")
    p_colon.add_argument("--in-place", "-i", action="store_true")

    p_links = sub.add_parser("format-links", help="Turn plain reference URLs into markdown links")
    p_links.add_argument("path")
    p_links.add_argument("--in-place", "-i", action="store_true")

    p_url = sub.add_parser("from-url", help="Build a footnote definition from a URL")
    p_url.add_argument("url")
    p_url.add_argument("--no-store", action="store_true", help="Do not write a citation record")
    return parser


def _emit(path: Path, doc: TextDocument, original: str, in_place: bool) -> None:
    text = doc.get_text()
    if in_place:
        if text != original:
            path.write_text(text, encoding="utf-8")
        return
    sys.stdout.write(text)


def main(argv=None):
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    service = CitationService.from_settings(settings)
    if getattr(args, "trailing", False):
        service.reference_mode = ReferenceMode.TRAILING
    store = None if getattr(args, "no_store", False) else CitationFileStore(settings.citations_dir)
    commands = CiteWideCommands(
        service,
        ConsoleNotifier(),
        url_service=UrlCitationService.from_settings(settings),
        store=store,
    )

    if args.command == "from-url":
        doc = TextDocument.select_all(args.url)
        result = commands.extract_citation_from_url(doc)
        if not result.changed:
            sys.exit(1)
        print(doc.get_text())
        return

    path = Path(args.path)
    try:
        original = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "list":
        for s in commands.show_citations(TextDocument(original)):
            ref = f" -> {s.reference_text}" if s.reference_text else ""
            print(f"{s.display_key} ({s.instances} instances){ref}")
            for line_no, line in s.lines:
                print(f"    {line_no}: {line.strip()}")
        return

    doc = TextDocument.select_all(original)
    if args.command == "convert":
        if args.key:
            commands.convert_citation(doc, args.key)
        else:
            commands.convert_all_citations(doc, synthesize=args.synthesize)
    elif args.command == "punctuate":
        commands.format_citation_punctuation(doc)
    elif args.command == "add-colons":
        commands.clean_references_section(doc)
    elif args.command == "format-links":
        commands.format_links_in_selection(doc)
    _emit(path, doc, original, args.in_place)


if __name__ == "__main__":
    main()
