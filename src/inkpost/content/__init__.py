"""Post content: rendering, text helpers, post and category services."""
