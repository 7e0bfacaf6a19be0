"""Editor window widgets."""
