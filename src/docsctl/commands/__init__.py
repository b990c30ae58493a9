"""docsctl subcommands."""
