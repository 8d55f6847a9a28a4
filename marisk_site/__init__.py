"""Marisk site backend — FastAPI app serving the static site and its JSON API."""
