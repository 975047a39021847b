"""Response session engine for course feedback collection."""
