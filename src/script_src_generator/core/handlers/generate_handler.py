# ============================================
# file: src/script_src_generator/core/handlers/generate_handler.py
# ============================================
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from jinja2 import Template, TemplateError

from script_src_generator.core.managers.config_manager import config_manager
from script_src_generator.core.services.template_service import TemplateService
from script_src_generator.core.utils.configure_logging import configure_logger
from scriptsrc.controllers.script_src_controller import ScriptSrcController, expand_patterns
from scriptsrc.errors import ScriptSrcAggregateError
from scriptsrc.model import ScriptSrc
from scriptsrc.services.digest_service import HashAlgorithm

logger = logging.getLogger(__name__)

generate_epilog = """
The template is executed with the following fields available:
  {{ script_src }}  the value of the script-src CSP, for example
                    "'self' 'sha512-...' https://example.com"
  {{ hashes }}, {{ hosts }}, {{ others }} and {{ self_ }} for custom layouts.

For example:

  script-src-generator --csp-template-string "Content-Security-Policy: script-src {{ script_src }};" '/web/root/**/*.html'
  script-src-generator --quiet --csp-template-string "Content-Security-Policy: script-src {{ script_src }};" /web/root/*.html

Will generate a content security policy for the files in /web/root.

Only run this on trusted HTML (your own static files), never on anything
that could contain user input.
""".strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="script-src-generator",
        description="Generate the CSP script-src needed to run the scripts in trusted HTML files.",
        epilog=generate_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("paths", metavar="HTML_FILE", nargs="+",
                        help="HTML files to process. Glob patterns (including **) are expanded.")
    parser.add_argument("--quiet", action="store_true",
                        help="Do not print the files being processed to stderr.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    algo = parser.add_mutually_exclusive_group()
    for member in HashAlgorithm:
        algo.add_argument(f"--{member.value}", dest="hash_algorithm", action="store_const", const=member,
                          help=f"Hash inline scripts with {member.value}.")

    tpl = parser.add_mutually_exclusive_group()
    tpl.add_argument("--csp-template-file", metavar="TEMPLATE_FILE",
                     help="Render the result through this Jinja2 template file.")
    tpl.add_argument("--csp-template-string", metavar="TEMPLATE",
                     help="Render the result through this Jinja2 template string.")

    parser.add_argument("--extra", metavar="TOKEN", action="append", default=[],
                        help="Extra source to append verbatim, e.g. \"'strict-dynamic'\". Repeatable.")
    parser.add_argument("--no-event-handlers", action="store_true",
                        help="Do not hash on* event handler attributes.")
    parser.add_argument("--workers", type=int, default=None,
                        help="Number of parallel processes (default from settings.json).")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar.")
    return parser


def _load_template(svc: TemplateService, pargs: argparse.Namespace) -> Optional[Template]:
    if pargs.csp_template_file:
        return svc.from_file(pargs.csp_template_file)
    if pargs.csp_template_string is not None:
        return svc.from_string(pargs.csp_template_string)
    return None


def handle_generate(args: List[str]) -> int:
    """Runs the generator for the given command line arguments. Returns the exit code."""
    parser = build_parser()
    try:
        pargs = parser.parse_args(args)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1

    if pargs.verbose:
        configure_logger(
            config_manager.get_nested("debug.level", "WARNING"),
            silenced_loggers=config_manager.get_nested("debug.silenced_loggers"),
            verbose=True,
        )

    settings = config_manager.generator_settings()
    hash_algorithm = pargs.hash_algorithm or settings.hash_algorithm
    workers = pargs.workers if pargs.workers is not None else settings.workers
    if workers < 1:
        print("--workers must be at least 1", file=sys.stderr)
        return 1
    include_event_handlers = settings.include_event_handlers and not pargs.no_event_handlers

    # Templates are parsed up front so a typo fails before any hashing happens
    svc = TemplateService()
    try:
        template = _load_template(svc, pargs)
    except (TemplateError, OSError) as e:
        source = f" from {pargs.csp_template_file}" if pargs.csp_template_file else ""
        print(f"Failed to parse CSP template{source}: {e}", file=sys.stderr)
        return 1

    paths = expand_patterns(pargs.paths)
    if not paths:
        print("No HTML files matched.", file=sys.stderr)
        return 1

    def announce(path: str) -> None:
        print(">", path, file=sys.stderr)

    controller = ScriptSrcController(
        hash_algorithm=hash_algorithm,
        include_event_handlers=include_event_handlers,
        workers=workers,
        show_progress=pargs.progress or settings.show_progress,
        on_file=None if pargs.quiet else announce,
    )
    script_src = ScriptSrc(hash_algorithm=hash_algorithm)
    try:
        controller.process_files(paths, script_src)
    except ScriptSrcAggregateError as e:
        for error in e.errors:
            print(error, file=sys.stderr)
        return 1

    for token in pargs.extra:
        script_src.add_other(token)

    if template is None:
        print(script_src.format())
        return 0

    try:
        sys.stdout.write(svc.render(template, script_src))
    except TemplateError as e:
        print(f"Failed to execute CSP template: {e}", file=sys.stderr)
        return 1
    return 0
