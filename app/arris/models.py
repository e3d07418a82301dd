"""Typed records for one row of each of the bonded channel tables."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DownstreamChannel:
    """One row of the 'Downstream Bonded Channels' table.

    E.G.: ['4', 'Locked', 'QAM256', '363000000 Hz', '6.2 dBmV', '40.5 dB', '0', '0']
    """

    channel_id: str
    lock_status: str
    modulation: str
    frequency_hz: int
    power_dbmv: float
    snr_mer_db: float
    corrected: int
    uncorrectables: int


@dataclass(frozen=True)
class UpstreamChannel:
    """One row of the 'Upstream Bonded Channels' table.

    E.G.: ['1', '1', 'Locked', 'SC-QAM Upstream', '10400000 Hz', '3200000 Hz', '43.0 dBmV']
    """

    # Appears to just be a numerical index the same way a spreadsheet would have a number for each row.
    channel: str
    channel_id: str
    lock_status: str
    channel_type: str
    frequency_hz: int
    width_hz: int
    power_dbmv: float
