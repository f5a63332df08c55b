"""Infrastructure: persistence and observability."""
