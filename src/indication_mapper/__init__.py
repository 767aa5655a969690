"""IndicationMapper: drug label indications mapped to ICD-10 codes."""

__version__ = "0.1.0"
