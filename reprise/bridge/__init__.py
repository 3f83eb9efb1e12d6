"""Bridge to the Bitrise API: HTTP client and web URL parsing."""
