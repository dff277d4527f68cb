"""wikigate: resource authorization for a wiki backend."""
