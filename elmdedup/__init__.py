"""elmdedup — development environment and Elm ecosystem tooling for the elm-dedup project."""
