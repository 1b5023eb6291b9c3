"""Text and markup helpers shared by extraction modules."""
