"""HTTP service exposing sketch analysis, previews and contract generation."""
