"""GraphQL stage of the gateway."""

from .context import GraphQLContext, build_context_getter
from .router import GatewayGraphQLRouter

__all__ = ["GatewayGraphQLRouter", "GraphQLContext", "build_context_getter"]
