"""
Data ingestion module for PhoneStats.

Sensor sources push messages into bounded channels; each channel has a
single worker thread that applies them to its analyzer.
"""

from phonestats.ingestion.channel import IngestionChannel
from phonestats.ingestion.messages import FrameEvent, LocationFix

__all__ = ['IngestionChannel', 'FrameEvent', 'LocationFix']
