"""Lead enrichment and Lemlist campaign sync pipeline."""
