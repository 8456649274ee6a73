"""Playset configurator: modular jungle-gym catalog, design validation,
pricing and quote handling behind a FastAPI service."""
