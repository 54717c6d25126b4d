"""Upload engine: chunk selection, retries and the send loop."""
