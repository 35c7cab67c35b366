"""Resolution engines: the POM graph resolver and the artifact downloader."""
