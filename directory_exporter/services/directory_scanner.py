"""
Directory Scanner - recursive statistics walk for one observed directory.

Responsibilities:
- Walk every entry below a directory root (depth first, sorted by name,
  without recursion so tree depth is not limited)
- Classify entries through the directory's exclude/include patterns
- Accumulate counts and sizes into a ScanResult
- Keep walking when single entries fail; only a broken root fails the scan

The walk is synchronous and blocking. Callers that run inside an event loop
execute it with ``asyncio.to_thread``.
"""

import logging
import os
import stat
import time

from ..models import DirectorySpec, ScanResult


class DirectoryScanner:
    """
    Computes file statistics for a directory under its DirectorySpec.

    Entries are examined with lstat, so symlinks are counted as links and
    never followed. Per-entry classification:

    1. every entry adds its size to ``dir_size``
    2. with ``only_files`` directories, and links to directories, stop here
    3. an exclude match counts in ``excluded_files`` and stops
    4. with include patterns, a match counts in ``file_count`` only
       (``files_size`` is not touched) and every entry stops here
    5. otherwise the entry counts in ``file_count`` and ``files_size``
    """

    def scan(self, path: str, spec: DirectorySpec) -> ScanResult:
        result = ScanResult()
        started = time.perf_counter()

        try:
            root_stat = os.stat(path)
            if not stat.S_ISDIR(root_stat.st_mode):
                raise NotADirectoryError(f"Path is not a directory: {path}")
            entries = self._list_directory(path)
        except OSError as e:
            logging.error(f"Error getting count of files for '{spec.path}': {e}")
            result.error = str(e)
            result.duration_seconds = time.perf_counter() - started
            return result

        self._walk_entries(entries, spec, result)

        result.duration_seconds = time.perf_counter() - started
        logging.debug(
            f"Scanned '{path}': {result.file_count} files, "
            f"{result.excluded_files} excluded, {result.dir_size} bytes "
            f"in {result.duration_seconds:.3f}s"
        )
        return result

    def _walk_entries(self, entries, spec: DirectorySpec, result: ScanResult) -> None:
        # Stack of sibling iterators, depth first without recursion
        pending = [iter(entries)]
        while pending:
            entry = next(pending[-1], None)
            if entry is None:
                pending.pop()
                continue

            try:
                entry_stat = entry.stat(follow_symlinks=False)
            except OSError as e:
                logging.error(f"Error iterating path '{entry.path}': {e}")
                result.walk_errors += 1
                continue

            is_directory = stat.S_ISDIR(entry_stat.st_mode)
            counts_as_directory = is_directory
            if spec.only_files and stat.S_ISLNK(entry_stat.st_mode):
                counts_as_directory = self._links_to_directory(entry)
            self._classify(entry.path, entry_stat.st_size, counts_as_directory, spec, result)

            if is_directory:
                try:
                    children = self._list_directory(entry.path)
                except OSError as e:
                    logging.error(f"Error iterating path '{entry.path}': {e}")
                    result.walk_errors += 1
                    continue
                pending.append(iter(children))

    @staticmethod
    def _links_to_directory(entry) -> bool:
        try:
            return entry.is_dir(follow_symlinks=True)
        except OSError as e:
            logging.error(f"Can't get stat for path '{entry.path}': {e}")
            return False

    @staticmethod
    def _classify(
        path: str, size: int, is_directory: bool, spec: DirectorySpec, result: ScanResult
    ) -> None:
        result.dir_size += size

        if spec.only_files and is_directory:
            return

        if spec.exclude.matches(path):
            result.excluded_files += 1
            return

        if spec.include:
            # Included entries are counted but deliberately not sized.
            if spec.include.matches(path):
                result.file_count += 1
            return

        result.file_count += 1
        result.files_size += size

    @staticmethod
    def _list_directory(path: str) -> list:
        with os.scandir(path) as it:
            return sorted(it, key=lambda entry: entry.name)
