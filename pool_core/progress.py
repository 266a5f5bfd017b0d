"""Progress observers notified while documents are streamed."""
import logging

from prometheus_client import Counter

logger = logging.getLogger(__name__)


class ProgressObserver:
    """Sink for traversal progress. The base class ignores everything."""

    def section_started(self, document, section):
        pass

    def progress(self, document, section, count):
        pass

    def section_finished(self, document, section, count):
        pass

    def record_matched(self, document, section, record):
        pass


def notify(observer, method, *args):
    """Call an observer hook; a failing observer never fails the traversal."""
    if observer is None:
        return
    try:
        getattr(observer, method)(*args)
    except Exception as e:
        logger.debug("progress observer %s.%s failed: %s", type(observer).__name__, method, e)


class LoggingObserver(ProgressObserver):
    def section_started(self, document, section):
        logger.info("Scanning %s %s records...", section, document)

    def progress(self, document, section, count):
        logger.info("%s %s records | %s", count, document, section)

    def section_finished(self, document, section, count):
        logger.info("Processed %s %s %s records", count, section, document)

    def record_matched(self, document, section, record):
        logger.info("Match in %s %s: %s", section, document, record)


class FanoutObserver(ProgressObserver):
    def __init__(self, *observers):
        self.observers = observers

    def section_started(self, document, section):
        for o in self.observers:
            notify(o, "section_started", document, section)

    def progress(self, document, section, count):
        for o in self.observers:
            notify(o, "progress", document, section, count)

    def section_finished(self, document, section, count):
        for o in self.observers:
            notify(o, "section_finished", document, section, count)

    def record_matched(self, document, section, record):
        for o in self.observers:
            notify(o, "record_matched", document, section, record)


records_scanned = Counter(
    "pool_records_scanned_total", "Records streamed from source documents", ["document", "section"]
)
records_matched = Counter(
    "pool_records_matched_total", "Records that satisfied the filter", ["document", "section"]
)


class MetricsObserver(ProgressObserver):
    """Feeds Prometheus counters; scanned counts are added per section."""

    def section_finished(self, document, section, count):
        records_scanned.labels(document=document, section=section).inc(count)

    def record_matched(self, document, section, record):
        records_matched.labels(document=document, section=section).inc()
