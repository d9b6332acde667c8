"""
Engines: product ingestion and price forecasting.
"""
