"""Client-side domain: catalog, report entities, session and capabilities."""
