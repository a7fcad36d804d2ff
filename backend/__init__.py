"""
Flask API and server runner for the MMR processor.
"""
