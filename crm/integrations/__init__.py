"""crm.integrations: external service gateway modules.

All outbound HTTP calls to the remote CRM backend must go through a gateway
in this package, never via bare `requests` calls in services or blueprints.

Every gateway call:
  - Injects the backend credentials
  - Returns a structured GatewayResult instead of raising
  - Logs failures with method and table

Current gateways:
  rest_gateway.RestGateway   hosted relational backend REST API
"""
