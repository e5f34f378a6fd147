"""Monitor engine: session, market data, trade execution and the tick loop."""
