"""API blueprints for the relgraph webapp."""
