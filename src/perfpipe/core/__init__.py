"""Collection pipeline core: models, ports and pipeline stages."""
