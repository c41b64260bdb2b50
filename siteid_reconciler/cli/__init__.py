# CLI package for siteid_reconciler
