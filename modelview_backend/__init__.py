"""Model Viewer Backend - FastAPI service over a DiagramSession."""
