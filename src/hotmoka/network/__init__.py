"""REST dispatch, outcome polling and STOMP event delivery for a remote node."""
