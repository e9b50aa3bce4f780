"""YAML translation catalogs and the translator that reads them."""
