"""Domain layer: user import state, resolvers, sweep, orchestration and fetching."""
