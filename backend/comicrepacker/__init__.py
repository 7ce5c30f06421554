"""ComicRepacker: scan a comic library and repack unsupported archives."""
