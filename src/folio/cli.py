"""CLI for folio - block documents with cross-document links."""

import argparse
import json
import platform
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .api.app import document_json
from .config import configure_logging
from .core.model import HEADING_TYPES, BlockType, Document, heading_level
from .format.links import to_display
from .format.tokens import references
from .lint import DEFAULT_RULES, Finding
from .runtime import build_runtime

_PREFIX = {
    BlockType.BULLET_LIST: "- ",
    BlockType.QUOTE: "> ",
    BlockType.CALLOUT: "! ",
}


def _not_found(what: str, id: str) -> int:
    print(f"{what} {id} not found", file=sys.stderr)
    return 1


def _get_doc(rt: Any, id: str) -> Document | None:
    return rt.store.get_document(id)


def render_block(block: Any, number: str | None) -> str:
    """One line of plain-text rendering for `show`."""
    text = to_display(block.content).text
    pad = "  " * (block.indent or 0)
    if block.type in HEADING_TYPES:
        return "#" * heading_level(block.type) + " " + text
    if block.type == BlockType.DIVIDER:
        return "---" if block.divider_variant != "stop" else "___"
    if block.type == BlockType.CODE:
        return f"```{block.language or ''}\n{block.content}\n```"
    box = ""
    if block.checked is not None:
        box = "[x] " if block.checked else "[ ] "
    if number is not None:
        return f"{pad}{number}. {box}{text}"
    if box:
        return f"{pad}{box}{text}"
    if block.type in (BlockType.PAGE_LINK, BlockType.SPACE_EMBED):
        return f"-> {block.target_document_id}"
    return pad + _PREFIX.get(block.type, "") + text


def cmd_id(args: argparse.Namespace, rt: Any) -> int:
    """Print a new random ID."""
    print(rt.idgen.new_id())
    return 0


def cmd_new(args: argparse.Namespace, rt: Any) -> int:
    """Create a new document."""
    if args.parent and _get_doc(rt, args.parent) is None:
        return _not_found("Document", args.parent)
    doc = rt.store.create_document(args.title or "New page", args.parent)
    if args.heading:
        rt.store.insert(doc.id, BlockType.HEADING1, index=0, content=doc.title)
    if args.json:
        print(json.dumps({"id": doc.id, "title": doc.title}))
    elif not args.quiet:
        print(doc.id)
    return 0


def cmd_ls(args: argparse.Namespace, rt: Any) -> int:
    """List documents as a tree."""
    ws = rt.workspace

    if args.json:
        output = [
            {"id": d.id, "title": d.title, "parent_id": d.parent_id, "blocks": len(d.blocks)}
            for d in sorted(ws.documents(), key=lambda d: d.created_at)
        ]
        print(json.dumps(output, indent=2))
        return 0

    def walk(doc: Document, depth: int, seen: set[str]) -> None:
        if doc.id in seen:
            return
        seen.add(doc.id)
        print(f"{'  ' * depth}{doc.id}  {doc.title}")
        for child in sorted(ws.children(doc.id), key=lambda d: d.created_at):
            walk(child, depth + 1, seen)

    seen: set[str] = set()
    for root in sorted(ws.roots(), key=lambda d: d.created_at):
        walk(root, 0, seen)
    return 0


def cmd_show(args: argparse.Namespace, rt: Any) -> int:
    """Print a document's visible blocks."""
    doc = _get_doc(rt, args.id)
    if doc is None:
        return _not_found("Document", args.id)

    numbers = rt.store.list_numbers(doc.id)
    if args.json:
        print(json.dumps(document_json(doc, numbers), indent=2))
        return 0

    by_id = {b.id: n for b, n in zip(doc.blocks, numbers)}
    if not args.quiet:
        print(f"{doc.title}  ({doc.id})")
    for block in rt.store.visible_blocks(doc.id):
        if block is doc.blocks[-1] and block.is_trailing_placeholder:
            continue
        line = render_block(block, by_id.get(block.id))
        print(f"{block.id}  {line}" if args.ids else line)
    return 0


def _block_fields(args: argparse.Namespace) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if args.content is not None:
        fields["content"] = args.content
    if args.checked is not None:
        fields["checked"] = args.checked
    if getattr(args, "indent", None) is not None:
        fields["indent"] = args.indent
    return fields


def cmd_add(args: argparse.Namespace, rt: Any) -> int:
    """Insert a block."""
    doc = _get_doc(rt, args.id)
    if doc is None:
        return _not_found("Document", args.id)
    anchor = args.after or args.before
    if anchor and doc.find(anchor) is None:
        return _not_found("Block", anchor)

    position = "before" if args.before else "after"
    if anchor is None and not args.end:
        # Default: take the place of the trailing empty block
        anchor, position = doc.blocks[-1].id, "before"
    block = rt.store.insert(doc.id, args.type, anchor=anchor, position=position, **_block_fields(args))
    if args.json:
        print(json.dumps(block.to_dict()))
    elif not args.quiet:
        print(block.id)
    return 0


def cmd_edit(args: argparse.Namespace, rt: Any) -> int:
    """Update fields of a block."""
    doc = _get_doc(rt, args.id)
    if doc is None:
        return _not_found("Document", args.id)
    if doc.find(args.block) is None:
        return _not_found("Block", args.block)

    fields = _block_fields(args)
    if args.shortcuts and "content" in fields:
        rt.store.apply_shortcut(doc.id, args.block, fields.pop("content"))
    if args.number is not None:
        rt.store.set_list_number(doc.id, args.block, args.number or None)
    if fields:
        rt.store.update(doc.id, args.block, **fields)
    return 0


def cmd_rm_block(args: argparse.Namespace, rt: Any) -> int:
    """Delete a block."""
    if _get_doc(rt, args.id) is None:
        return _not_found("Document", args.id)
    if rt.store.delete(args.id, args.block) is None:
        return _not_found("Block", args.block)
    return 0


def cmd_convert(args: argparse.Namespace, rt: Any) -> int:
    """Change the type of one or more blocks."""
    doc = _get_doc(rt, args.id)
    if doc is None:
        return _not_found("Document", args.id)
    for block_id in args.blocks:
        if doc.find(block_id) is None:
            return _not_found("Block", block_id)
    converted = rt.store.convert_type(doc.id, args.blocks, args.type)
    if args.json:
        print(json.dumps(converted))
    elif not args.quiet:
        print(f"Converted {len(converted)} block(s)")
    return 0


def cmd_mv(args: argparse.Namespace, rt: Any) -> int:
    """Move blocks inside a document, or move the document in the tree."""
    doc = _get_doc(rt, args.id)
    if doc is None:
        return _not_found("Document", args.id)

    if args.parent is not None:
        parent = None if args.parent in ("", "root") else args.parent
        if parent is not None and _get_doc(rt, parent) is None:
            return _not_found("Document", parent)
        if not rt.store.move_document(doc.id, parent):
            print(f"Cannot move {doc.id} under {parent}", file=sys.stderr)
            return 1
        return 0

    if args.from_index is None or args.to_index is None:
        print("Error: mv needs FROM and TO indexes or --parent", file=sys.stderr)
        return 2
    moved = rt.store.move(doc.id, args.from_index, args.to_index, args.count)
    if not args.quiet and not moved:
        print("Nothing moved")
    return 0


def cmd_rename(args: argparse.Namespace, rt: Any) -> int:
    """Rename a document and rewrite links pointing at it."""
    if rt.store.rename_document(args.id, args.title) is None:
        return _not_found("Document", args.id)
    return 0


def cmd_rm(args: argparse.Namespace, rt: Any) -> int:
    """Delete a document and its sub-documents."""
    if _get_doc(rt, args.id) is None:
        return _not_found("Document", args.id)

    referencing = rt.store.references.find_referencing(args.id)
    if not args.yes:
        if referencing:
            print(f"{len(referencing)} document(s) link here; their links will break.")
        response = input(f"Delete document {args.id} and its children? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("Aborted")
            return 0

    deleted = rt.store.delete_document(args.id)
    if args.json:
        print(json.dumps({"deleted": deleted}))
    elif not args.quiet:
        print(f"Deleted {len(deleted)} document(s)")
    return 0


def cmd_backrefs(args: argparse.Namespace, rt: Any) -> int:
    """Show documents linking to a document, with the linking text."""
    output = []
    for doc in rt.store.references.find_referencing(args.id):
        for block in doc.blocks:
            if references(block.content, args.id):
                output.append({
                    "source": doc.id,
                    "title": doc.title,
                    "block": block.id,
                    "text": to_display(block.content).text,
                })

    if args.json:
        print(json.dumps(output, indent=2))
    else:
        for ref in output:
            if not args.quiet:
                print(f"\n{ref['source']} ({ref['title']}):")
            print(f"  {ref['text']}")
    return 0


def cmd_lint(args: argparse.Namespace, rt: Any) -> int:
    """Report broken links and structural problems."""
    all_findings: list[tuple[str, Finding]] = []
    for doc in rt.workspace.documents():
        for rule in DEFAULT_RULES:
            for f in rule.check(doc, rt.store.references):
                all_findings.append((doc.id, f))

    if args.json:
        output = [
            {
                "document_id": did,
                "block_id": f.block_id,
                "severity": f.severity,
                "message": f.message,
                "range": {"start": f.range.start, "end": f.range.end} if f.range else None,
            }
            for did, f in all_findings
        ]
        print(json.dumps(output, indent=2))
    else:
        for did, f in all_findings:
            if not args.quiet:
                print(f"{did}/{f.block_id}: [{f.severity}] {f.message}")

    return 1 if any(f.severity == "error" for _, f in all_findings) else 0


def cmd_relink(args: argparse.Namespace, rt: Any) -> int:
    """Point every link to OLD at NEW."""
    if _get_doc(rt, args.new) is None:
        return _not_found("Document", args.new)
    count = 0
    for doc in rt.store.references.find_referencing(args.old):
        for block in list(doc.blocks):
            if references(block.content, args.old):
                before = block.content
                rt.store.relink(doc.id, block.id, args.old, args.new)
                count += before != block.content
    if not args.quiet:
        print(f"Relinked {count} block(s)")
    return 0


def cmd_serve(args: argparse.Namespace, rt: Any) -> int:
    """Start local JSON API server."""
    import uvicorn

    from .api.app import create_app, generate_token

    token_arg = getattr(args, "token", "auto")
    token = None

    if token_arg == "auto":
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif token_arg == "none":
        print("Warning: Running without authentication. Only use in trusted environments.")
        token = None
    else:
        token = token_arg

    app = create_app(rt, token=token, enable_cors=args.cors)

    print(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def version_text() -> str:
    return f"folio {__version__}\npython {platform.python_version()}\nplatform {platform.platform()}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="folio", description="Folio CLI")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/folio.toml, workspace/folio.toml)",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=None,
        help="Path to workspace directory (overrides config)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimize output")
    parser.add_argument("--json", action="store_true", help="Machine-readable output")
    parser.add_argument("--version", action="version", version=version_text())

    subparsers = parser.add_subparsers(dest="cmd", required=True)
    types = [t.value for t in BlockType]

    subparsers.add_parser("id", help="Print a new random ID")

    p = subparsers.add_parser("new", help="Create a new document")
    p.add_argument("title", nargs="?", default=None)
    p.add_argument("--parent", default=None, help="Parent document id")
    p.add_argument("--heading", action="store_true", help="Start with a heading holding the title")

    subparsers.add_parser("ls", help="List documents")

    p = subparsers.add_parser("show", help="Print a document")
    p.add_argument("id")
    p.add_argument("--ids", action="store_true", help="Prefix each line with its block id")

    def block_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--content", default=None, help="Block text in storage form")
        check = p.add_mutually_exclusive_group()
        check.add_argument("--checked", dest="checked", action="store_const", const=True, default=None)
        check.add_argument("--unchecked", dest="checked", action="store_const", const=False)
        p.add_argument("--indent", type=int, default=None)

    p = subparsers.add_parser("add", help="Insert a block")
    p.add_argument("id")
    p.add_argument("--type", choices=types, default="text")
    where = p.add_mutually_exclusive_group()
    where.add_argument("--after", default=None, help="Insert after this block")
    where.add_argument("--before", default=None, help="Insert before this block")
    where.add_argument("--end", action="store_true", help="Append after the trailing block")
    block_args(p)

    p = subparsers.add_parser("edit", help="Update a block")
    p.add_argument("id")
    p.add_argument("block")
    p.add_argument("--shortcuts", action="store_true", help="Apply markdown-style prefixes in --content")
    p.add_argument("--number", type=int, default=None, help="Manual list number (0 clears)")
    block_args(p)

    p = subparsers.add_parser("rm-block", help="Delete a block")
    p.add_argument("id")
    p.add_argument("block")

    p = subparsers.add_parser("convert", help="Change block types")
    p.add_argument("id")
    p.add_argument("type", choices=types)
    p.add_argument("blocks", nargs="+")

    p = subparsers.add_parser("mv", help="Move blocks, or re-parent a document with --parent")
    p.add_argument("id")
    p.add_argument("from_index", type=int, nargs="?")
    p.add_argument("to_index", type=int, nargs="?")
    p.add_argument("--count", type=int, default=1)
    p.add_argument("--parent", default=None, help="New parent id ('root' for top level)")

    p = subparsers.add_parser("rename", help="Rename a document")
    p.add_argument("id")
    p.add_argument("title")

    p = subparsers.add_parser("rm", help="Delete a document and its children")
    p.add_argument("id")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    p = subparsers.add_parser("backrefs", help="Show incoming links")
    p.add_argument("id")

    subparsers.add_parser("lint", help="Report broken links")

    p = subparsers.add_parser("relink", help="Point links at another document")
    p.add_argument("old")
    p.add_argument("new")

    p = subparsers.add_parser("serve", help="Start local JSON API server")
    p.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    p.add_argument("--port", type=int, default=8765, help="Port to bind to (default: 8765)")
    p.add_argument("--token", default="auto", help="Bearer token (auto|<string>|none, default: auto)")
    p.add_argument("--cors", action="store_true", help="Enable CORS (default: false)")

    return parser


HANDLERS = {
    "id": cmd_id,
    "new": cmd_new,
    "ls": cmd_ls,
    "show": cmd_show,
    "add": cmd_add,
    "edit": cmd_edit,
    "rm-block": cmd_rm_block,
    "convert": cmd_convert,
    "mv": cmd_mv,
    "rename": cmd_rename,
    "rm": cmd_rm,
    "backrefs": cmd_backrefs,
    "lint": cmd_lint,
    "relink": cmd_relink,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        rt = build_runtime(workspace_path=args.workspace, config_path=args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(rt.config.log.level)

    handler = HANDLERS[args.cmd]
    try:
        exit_code = handler(args, rt)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        rt.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
