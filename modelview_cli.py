#!/usr/bin/env python3
"""Model viewer CLI - inspect a class model graph and its diagrams as JSON."""

import argparse
import json
import logging
import sys

from modelview_backend.logging_config import parse_level, setup_logging
from modelview_core import (
    DiagramSession, LayoutMode, build_demo_graph, classify_name,
    summarize_diagram, validate_graph, validation_summary,
)
from modelview_core.archetypes import matching_rule, normalize_archetype_tag


logger = logging.getLogger("modelview_cli")


def _json_out(data) -> int:
    print(json.dumps(data))
    return 1 if data.get("status") == "error" else 0


def _error(message: str) -> int:
    return _json_out({"status": "error", "error": message})


def _parse_viewport(value):
    """Parse a WIDTHxHEIGHT viewport argument."""
    try:
        width, height = (float(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("viewport size must be positive")
    return width, height


def _open_session(args) -> DiagramSession:
    session = DiagramSession()
    if args.graph:
        session.open_graph(args.graph)
    else:
        session.load_graph(build_demo_graph())
    return session


# ── Graph ────────────────────────────────────────────────────────────────────

def cmd_tree(args):
    session = _open_session(args)
    tree = session.model_tree(args.path)
    if tree is None:
        return _error(f"Model not found: {args.path!r}")
    return _json_out({"status": "ok", "tree": tree})


def cmd_validate(args):
    session = _open_session(args)
    issues = validate_graph(session.graph)
    return _json_out({
        "status": "ok",
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues),
    })


# ── Diagrams ─────────────────────────────────────────────────────────────────

def cmd_render(args):
    session = _open_session(args)
    if args.viewport:
        session.set_viewport_size(*args.viewport)
    path = session.graph.root_path() if args.path is None else args.path

    if args.mode:
        diagram = session.relayout(path, LayoutMode(args.mode))
    else:
        diagram = session.select_model(path)
    if diagram is None:
        return _error(f"Model not found: {path!r}")
    return _json_out({"status": "ok", "diagram": diagram.to_json_dict()})


def cmd_summary(args):
    session = _open_session(args)
    path = session.graph.root_path() if args.path is None else args.path
    diagram = session.get_diagram(path)
    if diagram is None:
        return _error(f"Model not found: {path!r}")
    return _json_out({"status": "ok", "summary": summarize_diagram(diagram, args.top).to_dict()})


def cmd_classify(args):
    if normalize_archetype_tag(args.tag) is not None:
        rule_name = "explicit-tag"
    else:
        rule = matching_rule(args.name)
        rule_name = rule.name if rule else "default"
    return _json_out({
        "status": "ok",
        "name": args.name,
        "archetype": classify_name(args.name, args.tag).value,
        "rule": rule_name,
    })


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    from modelview_backend import main as backend
    if args.graph:
        backend.GRAPH_PATH = args.graph
    if args.log_level:
        # The app configures logging in its lifespan, from this module global
        backend.LOG_LEVEL = parse_level(args.log_level, backend.LOG_LEVEL)
    backend.run(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Model viewer CLI")
    parser.add_argument("--graph", default=None,
                        help="Graph JSON file (the demo project when omitted)")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (warning for commands, the server default for serve)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("tree")
    p.add_argument("--path", default=None)

    sub.add_parser("validate")

    p = sub.add_parser("render")
    p.add_argument("--path", default=None)
    p.add_argument("--mode", choices=[m.value for m in LayoutMode], default=None)
    p.add_argument("--viewport", type=_parse_viewport, default=None)

    p = sub.add_parser("summary")
    p.add_argument("--path", default=None)
    p.add_argument("--top", type=int, default=5)

    p = sub.add_parser("classify")
    p.add_argument("name")
    p.add_argument("--tag", default=None)

    p = sub.add_parser("serve")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8765)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(parse_level(args.log_level, logging.WARNING))

    cmd_map = {
        "tree": cmd_tree,
        "validate": cmd_validate,
        "render": cmd_render,
        "summary": cmd_summary,
        "classify": cmd_classify,
        "serve": cmd_serve,
    }
    try:
        return cmd_map[args.command](args)
    except FileNotFoundError as e:
        return _error(str(e))
    except ValueError as e:
        logger.debug("Graph load failed", exc_info=True)
        return _error(f"Invalid graph: {e}")


if __name__ == "__main__":
    sys.exit(main())
