# src/scriptsrc/controllers/script_src_controller.py
from __future__ import annotations

import glob
import logging
import re
from concurrent.futures import ProcessPoolExecutor
from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import ParserRejectedMarkup
from tqdm.auto import tqdm

from scriptsrc.errors import DocumentError, ParseFailure, ScriptSrcAggregateError, ScriptSrcError
from scriptsrc.model import ScriptSrc
from scriptsrc.services.digest_service import HashAlgorithm
from scriptsrc.services.tree_walk_service import Markup, TreeWalkService, parse_document

logger = logging.getLogger(__name__)

_GLOB_CHARS = re.compile(r"[*?[]")


def add_from_html(markup: Markup, script_src: ScriptSrc, include_event_handlers: bool = True) -> None:
    """Parses markup as HTML and adds everything its scripts need to script_src."""
    doc = parse_document(markup)
    TreeWalkService(script_src, include_event_handlers).walk(doc)


def add_from_html_file(path: str, script_src: ScriptSrc, include_event_handlers: bool = True) -> None:
    """
    Reads and parses the file at path, then walks it into script_src.
    Any failure is raised as a DocumentError naming the file.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            markup = f.read()
    except OSError as e:
        raise DocumentError(path, f"failed to read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ParseFailure(path, e) from e

    try:
        doc = parse_document(markup)
    except (ParserRejectedMarkup, AssertionError, ValueError) as e:
        raise ParseFailure(path, e) from e

    # Walk into a scratch copy so a failing document leaves script_src untouched
    found = ScriptSrc(hash_algorithm=script_src.hash_algorithm)
    try:
        TreeWalkService(found, include_event_handlers).walk(doc)
    except ScriptSrcError as e:
        raise DocumentError(path, f"failed to process {path}: {e}") from e
    script_src.merge(found)


def _file_worker(
        path: str, hash_algorithm: HashAlgorithm, include_event_handlers: bool
) -> Tuple[Optional[ScriptSrc], Optional[DocumentError]]:
    """Processes one file into its own ScriptSrc. Runs in a worker process."""
    script_src = ScriptSrc(hash_algorithm=hash_algorithm)
    try:
        add_from_html_file(path, script_src, include_event_handlers)
    except DocumentError as e:
        return None, e
    return script_src, None


class ScriptSrcController:
    """
    Generates the script-src needed by a batch of trusted HTML files.

    Files are processed in input order into one shared ScriptSrc. A failing
    file does not stop the batch; all failures are raised together at the end.
    With workers > 1 the files are processed in parallel and merged back in
    input order, so the result matches a sequential run.
    """

    def __init__(
            self,
            *,
            hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512,
            include_event_handlers: bool = True,
            workers: int = 1,
            show_progress: bool = False,
            on_file: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.hash_algorithm = hash_algorithm
        self.include_event_handlers = include_event_handlers
        self.workers = max(1, int(workers))
        self.show_progress = show_progress
        self.on_file = on_file

    def process_files(self, paths: Iterable[str], script_src: Optional[ScriptSrc] = None) -> ScriptSrc:
        """
        Adds every file in paths to script_src (a new one if not given) and returns it.
        Raises ScriptSrcAggregateError if any file failed.
        """
        paths = list(paths)
        if script_src is None:
            script_src = ScriptSrc(hash_algorithm=self.hash_algorithm)

        if self.workers > 1 and len(paths) > 1:
            errors = self._process_parallel(paths, script_src)
        else:
            errors = self._process_sequential(paths, script_src)

        if errors:
            raise ScriptSrcAggregateError(errors)
        return script_src

    def process_glob(self, pattern: str, script_src: Optional[ScriptSrc] = None) -> ScriptSrc:
        """Expands pattern (** is recursive) and processes the matches in sorted order."""
        paths = expand_patterns([pattern])
        logger.debug("Pattern %s matched %d files", pattern, len(paths))
        return self.process_files(paths, script_src)

    def _progress(self, iterable: Iterable, total: int) -> Iterable:
        if not self.show_progress:
            return iterable
        return tqdm(iterable, total=total, desc="Hashing scripts", unit="file", leave=False)

    def _process_sequential(self, paths: List[str], script_src: ScriptSrc) -> List[DocumentError]:
        errors: List[DocumentError] = []
        for path in self._progress(paths, len(paths)):
            if self.on_file:
                self.on_file(path)
            try:
                add_from_html_file(path, script_src, self.include_event_handlers)
            except DocumentError as e:
                logger.info("Failed: %s", e)
                errors.append(e)
        return errors

    def _process_parallel(self, paths: List[str], script_src: ScriptSrc) -> List[DocumentError]:
        errors: List[DocumentError] = []
        with ProcessPoolExecutor(max_workers=self.workers) as pool:
            futures = [
                pool.submit(_file_worker, path, script_src.hash_algorithm, self.include_event_handlers)
                for path in paths
            ]
            # Results are consumed in submission order, never completion order
            for path, fut in self._progress(zip(paths, futures), len(futures)):
                if self.on_file:
                    self.on_file(path)
                partial, error = fut.result()
                if error is not None:
                    logger.info("Failed: %s", error)
                    errors.append(error)
                else:
                    script_src.merge(partial)
        return errors


def expand_patterns(patterns: Iterable[str]) -> List[str]:
    """
    Turns command line arguments into file paths. Arguments with glob characters are
    expanded (sorted, ** recursive); plain paths are kept even if they do not exist,
    so that reading them reports an error.
    """
    paths: List[str] = []
    for pattern in patterns:
        if _GLOB_CHARS.search(pattern):
            paths.extend(sorted(glob.glob(pattern, recursive=True)))
        else:
            paths.append(pattern)
    return paths


def script_src_from_html_file(
        path: str,
        include_event_handlers: bool = True,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512,
) -> ScriptSrc:
    """
    Generates the script-src required to load a single HTML file.
    The file must be trusted HTML.
    """
    script_src = ScriptSrc(hash_algorithm=hash_algorithm)
    add_from_html_file(path, script_src, include_event_handlers)
    return script_src


def script_src_from_html_files(
        paths: Iterable[str],
        include_event_handlers: bool = True,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512,
) -> ScriptSrc:
    """
    Generates the script-src required to load any of the given HTML files.
    The files must be trusted HTML.
    """
    controller = ScriptSrcController(hash_algorithm=hash_algorithm, include_event_handlers=include_event_handlers)
    return controller.process_files(paths)


def script_src_from_html_file_glob(
        pattern: str,
        include_event_handlers: bool = True,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512,
) -> ScriptSrc:
    """
    Generates the script-src required to load any HTML file matching the glob pattern.
    The files must be trusted HTML.
    """
    controller = ScriptSrcController(hash_algorithm=hash_algorithm, include_event_handlers=include_event_handlers)
    return controller.process_glob(pattern)
