"""HTTP middleware: request ids, access logging, error envelopes."""
