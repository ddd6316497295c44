"""Console presentation of session notifications."""
