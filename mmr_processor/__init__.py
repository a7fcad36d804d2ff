#!/usr/bin/env python3
"""
MMR Processor - ingestion pipeline for Monthly Management Report workbooks.
"""

__version__ = "1.0.0"
