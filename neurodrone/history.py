"""
Prediction history for the NeuroDrone system.

Keeps every classifier result in arrival order and renders the label and
count columns most-recent first.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PredictionRecord:
    """One classifier result."""

    label: str
    count: int

    @classmethod
    def from_json(cls, payload):
        """Build a record from the classifier's JSON response body."""
        return cls(label=payload['prediction_label'], count=payload['prediction_count'])


class PredictionHistory:
    """Append-only log of prediction records."""

    def __init__(self):
        self._records = []

    def append(self, record):
        self._records.append(record)

    @property
    def latest(self):
        """Most recent record, or None if nothing was recorded yet."""
        return self._records[-1] if self._records else None

    def records(self):
        """Stored records in insertion order."""
        return tuple(self._records)

    def render_labels(self):
        """Labels, one per line, most recent first."""
        return self._render_reversed(lambda record: record.label)

    def render_counts(self):
        """Counts, one per line, most recent first."""
        return self._render_reversed(lambda record: str(record.count))

    def render_reversed(self):
        """
        Render both columns side by side, most recent first.

        Returns:
        --------
        text : str
            One "count<TAB>label" line per record
        """
        return '\n'.join(f"{record.count}\t{record.label}" for record in reversed(self._records))

    def _render_reversed(self, field):
        return '\n'.join(field(record) for record in reversed(self._records))

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self.records())
