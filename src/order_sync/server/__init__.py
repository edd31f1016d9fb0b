"""HTTP server for the order sync worker."""
