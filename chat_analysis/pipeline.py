"""
Chat analysis batch pipeline.

Orchestrates: Huggy fetch chats → fetch messages → transcript → classify →
enrich → report row → CSV

Usage:
    python -m chat_analysis.pipeline
    python -m chat_analysis.pipeline --output reports/march.csv --max 50
"""

import argparse
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from . import config
from .classifier import ChatClassifier
from .enricher import enrich_chat
from .huggy_client import HuggyClient
from .logging_utils import configure_logging
from .models import Chat, ClassificationFailure, OutputRow, PipelineRun
from .report import CsvReportSink
from .row_assembler import RowCollector, build_row
from .transcript import render_transcript

logger = logging.getLogger(__name__)

COMPLETION_MESSAGE = "Análise completada e arquivo CSV gerado."


class PipelineRunner:
    """
    Runs one pass over every chat, strictly sequentially.

    Partial failures never lose finished work: chats without messages and
    chats whose classification cannot be parsed are skipped, and the sink
    is always called exactly once with the rows collected so far.
    """

    def __init__(
        self,
        huggy: HuggyClient,
        classifier: ChatClassifier,
        sink: Callable[[List[OutputRow]], int],
        chat_pause: float = config.CHAT_PAUSE,
        isolate_chat_failures: bool = True,
        bot_name_marker: str = config.BOT_NAME_MARKER,
        max_chats: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.huggy = huggy
        self.classifier = classifier
        self.sink = sink
        self.chat_pause = chat_pause
        self.isolate_chat_failures = isolate_chat_failures
        self.bot_name_marker = bot_name_marker
        self.max_chats = max_chats
        self.sleep = sleep

    def process_chat(self, chat: Chat, run: PipelineRun) -> Optional[OutputRow]:
        """
        Fetch, classify and assemble one chat.

        Returns:
            The report row, or None if the chat has no messages or its
            classification was unusable
        """
        messages = self.huggy.fetch_messages(chat.id)
        if not messages:
            run.chats_skipped_empty += 1
            logger.info(f"Chat {chat.id}: no messages, skipping")
            return None

        enrichment = enrich_chat(messages, bot_name_marker=self.bot_name_marker)
        transcript = render_transcript(messages)

        outcome = self.classifier.classify(transcript, chat_id=chat.id)
        if isinstance(outcome, ClassificationFailure):
            run.classification_failures += 1
            return None

        return build_row(chat, enrichment, outcome)

    def _process_all(self, run: PipelineRun, collector: RowCollector) -> None:
        logger.info("Fetching chats from Huggy...")
        chats = self.huggy.fetch_chats()
        run.chats_fetched = len(chats)

        for chat in chats:
            if self.max_chats is not None and run.chats_processed >= self.max_chats:
                logger.info(f"Reached max chats limit ({self.max_chats})")
                break

            self.sleep(self.chat_pause)
            run.chats_processed += 1

            try:
                row = self.process_chat(chat, run)
            except Exception as e:
                if not self.isolate_chat_failures:
                    raise
                run.chat_errors += 1
                logger.error(f"Chat {chat.id} failed, continuing: {e}", exc_info=True)
                continue

            if row is not None:
                collector.append(row)

            if run.chats_processed % 10 == 0:
                logger.info(
                    f"Processed {run.chats_processed}/{run.chats_fetched} chats "
                    f"({len(collector)} rows)..."
                )

    def run(self) -> PipelineRun:
        """Process every chat and flush the collected rows to the sink."""
        run = PipelineRun()
        collector = RowCollector()

        try:
            self._process_all(run, collector)
            run.status = "completed"
        except Exception as e:
            logger.error(f"Pipeline aborted: {e}", exc_info=True)
            run.status = "aborted"
            run.error_message = str(e)
        finally:
            run.rows_written = self.sink(collector.rows)
            run.completed_at = datetime.now(timezone.utc)
            _log_summary(run)
            logger.info(COMPLETION_MESSAGE)

        return run


def _log_summary(run: PipelineRun) -> None:
    logger.info("=" * 50)
    logger.info(f"Pipeline {run.status}!")
    logger.info(f"  Chats fetched:    {run.chats_fetched}")
    logger.info(f"  Chats processed:  {run.chats_processed}")
    logger.info(f"  Without messages: {run.chats_skipped_empty}")
    logger.info(f"  Unparseable:      {run.classification_failures}")
    logger.info(f"  Errors:           {run.chat_errors}")
    logger.info(f"  Rows written:     {run.rows_written}")
    if run.error_message:
        logger.info(f"  Error:            {run.error_message}")
    logger.info("=" * 50)


def run_pipeline(
    settings: Optional[config.Settings] = None,
    max_chats: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineRun:
    """
    Run the full analysis pipeline.

    Args:
        settings: Resolved settings (default: load_settings())
        max_chats: Limit number of chats to process
        sleep: Sleep function used for every throttle delay

    Returns:
        PipelineRun with results
    """
    settings = settings or config.load_settings()

    runner = PipelineRunner(
        huggy=HuggyClient.from_settings(settings, sleep=sleep),
        classifier=ChatClassifier.from_settings(settings),
        sink=CsvReportSink(settings.report_path),
        chat_pause=settings.chat_pause,
        isolate_chat_failures=settings.isolate_chat_failures,
        bot_name_marker=settings.bot_name_marker,
        max_chats=max_chats,
        sleep=sleep,
    )
    run = runner.run()
    run.report_path = settings.report_path
    return run


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Classify Huggy support chats and write a CSV report"
    )
    parser.add_argument(
        "--output",
        type=str,
        help=f"Report path (default: REPORT_PATH or {config.REPORT_PATH})",
    )
    parser.add_argument(
        "--max",
        type=int,
        dest="max_chats",
        help="Maximum chats to process",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first chat that fails instead of skipping it",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    args = parser.parse_args(argv)
    if args.max_chats is not None and args.max_chats < 1:
        parser.error("--max must be at least 1")

    settings = config.load_settings()
    updates = {}
    if args.output:
        updates["report_path"] = args.output
    if args.fail_fast:
        updates["isolate_chat_failures"] = False
    if args.log_level:
        updates["log_level"] = args.log_level.upper()
    if updates:
        settings = settings.model_copy(update=updates)

    configure_logging(settings.log_level)
    run_pipeline(settings, max_chats=args.max_chats)
    # Shown even when the log level hides INFO
    print(COMPLETION_MESSAGE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
