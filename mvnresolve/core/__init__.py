"""Infrastructure shared by the engines: settings, logging, HTTP and the disk cache."""
