"""Order lifecycle services layered on the router: SLA policy, vendor performance and assignment."""
