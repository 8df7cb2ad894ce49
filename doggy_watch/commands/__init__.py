"""Chat command handling and slash command registration."""
