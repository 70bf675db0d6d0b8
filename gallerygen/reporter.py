"""
Reporter - Generates human-readable reports from manifest data.
"""

import logging
import sys
from collections import Counter
from typing import List, Optional, TextIO

from .manifest import Manifest


class Reporter:
    """
    Generates human-readable reports from manifest data.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_bytes(self, bytes_val: int) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} PB"

    def report_summary(self, manifest: Manifest, pending: Optional[int] = None) -> None:
        """
        Print a summary of the manifest.

        Args:
            manifest: Manifest to summarize
            pending: Images needing work under the current settings, if known
        """
        images = list(manifest.iter_images())
        processed = [i for i in images if i.is_processed]
        variants = sum(len(i.sizes) * len(i.formats) for i in images)
        source_bytes = sum(i.file_size for i in images)
        formats = Counter(fmt for i in images for fmt in i.formats)
        entries = list(manifest.iter_entries())

        self._print("=" * 60)
        self._print("MANIFEST SUMMARY")
        self._print("=" * 60)
        self._print(f"  Pages:          {sum(1 for e in entries if e.slug is not None):,}")
        self._print(f"  Galleries:      {manifest.total_galleries:,}")
        self._print(f"  Images:         {len(images):,} ({self._format_bytes(source_bytes)})")
        self._print(f"  Processed:      {len(processed):,}")
        self._print(f"  Variants:       {variants:,}")
        if formats:
            formats_str = ', '.join(f"{fmt} ({count:,})" for fmt, count in sorted(formats.items()))
            self._print(f"  Formats:        {formats_str}")
        if pending is not None:
            self._print(f"  Needing work:   {pending:,}")
        self._print()
        self._print(f"  Config hash:    {manifest.config_hash or '-'}")
        self._print(f"  Last scanned:   {manifest.last_scanned or 'never'}")
        self._print(f"  Last processed: {manifest.last_images_processed or 'never'}")
        self._print(f"  Last updated:   {manifest.last_updated or 'never'}")
        self._print("=" * 60)

    def report_tree(self, manifest: Manifest) -> None:
        """Print the site tree with image counts."""
        self._print(f"{manifest.root.title} ({len(manifest.root.images)} images)")
        for line in self._tree_lines(manifest.root.children, ''):
            self._print(line)

    def _tree_lines(self, entries, indent: str) -> List[str]:
        lines = []
        for entry in entries:
            flags = []
            if entry.slug is None:
                flags.append('branch')
            if entry.hidden:
                flags.append('hidden')
            flag_str = f" [{', '.join(flags)}]" if flags else ''
            lines.append(
                f"{indent}  {entry.title} -> /{entry.path} "
                f"({len(entry.images)} images){flag_str}"
            )
            lines.extend(self._tree_lines(entry.children, indent + '  '))
        return lines
