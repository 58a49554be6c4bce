"""CLI for indexing a vault, querying it and following its changes"""

import argparse
import sys
import time
from pathlib import Path

from loguru import logger

from notedex.config import settings
from notedex.index.document_index import DocumentIndex
from notedex.query.filter import Filter, FilterMode, rank
from notedex.tracking.file_tracker import FileTracker


def main(
    vault: str,
    file_types: list[str],
    query: str | None,
    mode: str,
    watch: bool,
    interval: float,
) -> None:
    tracker = FileTracker(
        Path(vault),
        file_types=file_types,
        ignore_filenames=settings.ignore_filenames,
        queue_size=settings.event_queue_size,
        use_polling=settings.use_polling,
        poll_interval=settings.poll_interval,
    )
    index = DocumentIndex(tracker)

    diagnostics = index.build()
    for diagnostic in diagnostics:
        print(f"error: {diagnostic.path}: {diagnostic.message}", file=sys.stderr)

    documents = list(index.documents())
    print(f"{len(documents)} documents in {tracker.vault_path}")
    print(f"{sum(len(d.tags) for d in documents)} tags, {sum(len(d.links) for d in documents)} links")

    if query is not None:
        for doc_id, score in rank(index, Filter.parse(query, mode=FilterMode(mode))):
            print(f"{score:6.1f}  {doc_id}")

    if not watch:
        return

    index.start_watching()
    logger.info("Watching for changes, press Ctrl+C to stop")
    try:
        while True:
            result = index.reconcile()
            if result.changed:
                logger.info(f"Index changed, {len(index)} documents, removed: {result.removed}")
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        index.stop_watching()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--vault", type=str, required=False, help="Root folder of the vault", default=str(settings.vault_path)
    )
    parser.add_argument(
        "--file-types",
        type=str,
        nargs="+",
        required=False,
        help="Type classes of files to index, 'all' indexes every file",
        default=settings.file_types,
    )
    parser.add_argument("--filter", type=str, required=False, help="Query to rank documents by")
    parser.add_argument(
        "--mode", type=str, choices=[m.value for m in FilterMode], default=FilterMode.ALL.value
    )
    parser.add_argument("--watch", action="store_true", help="Keep running and follow changes")
    parser.add_argument(
        "--interval", type=float, default=1.0, help="Seconds between polls while watching"
    )

    args = parser.parse_args()

    logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])
    main(
        vault=args.vault,
        file_types=args.file_types,
        query=args.filter,
        mode=args.mode,
        watch=args.watch,
        interval=args.interval,
    )
