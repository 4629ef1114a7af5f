"""Services: configuration, tool-version records, downloads and the SDK manager."""
