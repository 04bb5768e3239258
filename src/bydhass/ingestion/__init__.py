"""Parsing of raw Di-Plus and GPS payloads into snapshot values."""

from bydhass.ingestion.diplus import parse_diplus_response, parse_value_string

__all__ = ["parse_diplus_response", "parse_value_string"]
