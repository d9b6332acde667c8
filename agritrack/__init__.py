"""AgriTrack gateway: authenticated product catalogue and price forecasting."""
