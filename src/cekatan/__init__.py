"""cekatan: study scheduling, timed assessments and auto-scan ingestion."""

from cekatan.consts import VERSION

__version__ = VERSION
