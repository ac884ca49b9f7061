"""HTTP surface sharing one request cache between processes."""
