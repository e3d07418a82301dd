"""Turns parsed channel records into Prometheus text exposition lines.

The channel metrics are NOT prometheus_client metric objects: every scrape re-fetches the page and we want to
emit exactly what the page said, one line per (channel, field), with the integer counters kept as integers.
prometheus_client is still used for value formatting and for the exporter's own meta metrics which live in
their own registry so the default process/platform collectors don't get mixed in.
"""

from typing import Protocol

from arris.models import DownstreamChannel, UpstreamChannel
from prometheus_client import (CollectorRegistry, Counter, Summary,
                               disable_created_metrics)
from prometheus_client.utils import floatToGoString

# By default, client will automatically create a "_created" meta metric for
#   each metric defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()

DS_NS = "downstream_bonded_channels"
US_NS = "upstream_bonded_channels"
META_NS = "meta"


class TextSink(Protocol):
    """Anything with a `write(str)`; sys.stdout, io.StringIO ... etc"""

    def write(self, s: str, /) -> object: ...


##
# Meta Metrics
##
META_REGISTRY = CollectorRegistry()

# How long are we spending waiting on the modem?
# summary comes with both a count and a sum so we don't need to count the number of requests ourselves
s_meta_scrape_time = Summary(
    f"{META_NS}_request_duration_seconds",
    "Time spent waiting for modem to respond",
    # We only hit a few URLs so we can index by the target
    labelnames=["scrape_target"],
    registry=META_REGISTRY,
)

# Count of responses by HTTP code for each target
c_meta_scrape_result = Counter(
    f"{META_NS}_scrape_result",
    "Count of successful vs failed scrapes",
    # A few targets and the possible HTTP codes is bounded (i've only ever seen 200/401)
    #   so we're not going to blow up storage by doing this.
    labelnames=["http_code", "scrape_target"],
    registry=META_REGISTRY,
)

# Time to parse returned HTML isn't interesting but parse errors are
c_meta_parse_result = Counter(
    f"{META_NS}_parse_result",
    "Count of successful vs failed parse attempts",
    labelnames=["parse_target", "parse_result"],
    registry=META_REGISTRY,
)


def _escape_label_value(value: str) -> str:
    return value.replace("\\", r"\\").replace("\n", r"\n").replace('"', r"\"")


def _format_value(value: int | float) -> str:
    # Counters and frequencies are integers on the page; keep them that way instead of 363000000.0
    if isinstance(value, int):
        return str(value)
    return floatToGoString(value)


def _write_line(sink: TextSink, name: str, channel_id: str, value: int | float) -> None:
    sink.write(f'{name}{{channel_id="{_escape_label_value(channel_id)}"}} {_format_value(value)}\n')


def write_downstream_metrics(channels: list[DownstreamChannel], sink: TextSink) -> None:
    for ch in channels:
        _write_line(sink, f"{DS_NS}_frequency_hz", ch.channel_id, ch.frequency_hz)
        _write_line(sink, f"{DS_NS}_power_dbmv", ch.channel_id, ch.power_dbmv)
        _write_line(sink, f"{DS_NS}_snr_mer_db", ch.channel_id, ch.snr_mer_db)
        _write_line(sink, f"{DS_NS}_corrected", ch.channel_id, ch.corrected)
        _write_line(sink, f"{DS_NS}_uncorrectables", ch.channel_id, ch.uncorrectables)


def write_upstream_metrics(channels: list[UpstreamChannel], sink: TextSink) -> None:
    for ch in channels:
        _write_line(sink, f"{US_NS}_frequency_hz", ch.channel_id, ch.frequency_hz)
        _write_line(sink, f"{US_NS}_width_hz", ch.channel_id, ch.width_hz)
        _write_line(sink, f"{US_NS}_power_dbmv", ch.channel_id, ch.power_dbmv)


def write_metrics(
    downstream: list[DownstreamChannel],
    upstream: list[UpstreamChannel],
    sink: TextSink,
) -> None:
    """All downstream lines (record by record, in page order) and then all upstream lines.

    Nothing is buffered; whatever made it into the sink before an exception stays there.
    """
    write_downstream_metrics(downstream, sink)
    write_upstream_metrics(upstream, sink)
