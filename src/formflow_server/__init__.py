"""formflow_server — FastAPI service behind the form persistence endpoint."""
