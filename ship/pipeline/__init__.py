"""The build -> load -> tag -> push release pipeline."""
