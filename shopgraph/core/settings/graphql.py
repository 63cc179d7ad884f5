"""GraphQL endpoint settings (GRAPHQL_ prefix)."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GraphQLIDE = Literal["graphiql", "apollo-sandbox", "pathfinder", False]


class GraphQLSettings(BaseSettings):
    """Where the catalog schema is served and how deep a query may nest.

    A products -> edges -> node -> orders -> customer query is six levels;
    the default depth leaves room for fragments on top of that.
    """

    enabled: bool = True
    path: str = Field(default="/graphql", pattern=r"^/\S*$", description="Mount path of the endpoint")
    graphql_ide: GraphQLIDE = Field(default="graphiql", description="In-browser IDE, false to disable")
    max_query_depth: int = Field(default=10, ge=1, le=50)
    subscriptions_enabled: bool = Field(
        default=True,
        description="Serve the entityEvents subscription over graphql-transport-ws and graphql-ws",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAPHQL_",
        env_file=".env",
        extra="ignore",
        frozen=True,
        env_ignore_empty=True,
    )
