from __future__ import annotations

from typing import Final


PULL_REQUEST_LABEL_PAGE_SIZE: Final[int] = 5
REPOSITORY_LABEL_LIMIT: Final[int] = 100

_PULL_REQUEST_FIELDS: Final[str] = """
    id
    number
    state
    title
    body
    baseRefName
    headRefName
    changedFiles
    url
"""

REPOSITORY_QUERY: Final[str] = """
query GetRepository($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
    name
    owner { login }
    parent {
      id
      name
      owner { login }
    }
  }
}
"""

REPOSITORY_WITH_COMPARISON_QUERY: Final[str] = """
query GetRepositoryWithComparison(
  $owner: String!
  $name: String!
  $baseRef: String!
  $headRef: String!
) {
  repository(owner: $owner, name: $name) {
    id
    name
    owner { login }
    parent {
      id
      name
      owner { login }
    }
    ref(qualifiedName: $baseRef) {
      compare(headRef: $headRef) {
        status
      }
    }
  }
}
"""

AUTO_MERGE_ALLOWED_QUERY: Final[str] = """
query GetAutoMergeAllowed($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    autoMergeAllowed
  }
}
"""

REPOSITORY_LABELS_QUERY: Final[str] = f"""
query GetRepositoryLabels($owner: String!, $name: String!) {{
  repository(owner: $owner, name: $name) {{
    labels(first: {REPOSITORY_LABEL_LIMIT}) {{
      nodes {{
        id
        name
        description
      }}
    }}
  }}
}}
"""

PULL_REQUEST_LABELS_QUERY: Final[str] = f"""
query GetPullRequestLabels(
  $owner: String!
  $name: String!
  $number: Int!
  $before: String
) {{
  rateLimit {{
    cost
    remaining
    resetAt
  }}
  repository(owner: $owner, name: $name) {{
    pullRequest(number: $number) {{
      labels(last: {PULL_REQUEST_LABEL_PAGE_SIZE}, before: $before) {{
        totalCount
        pageInfo {{
          hasPreviousPage
          startCursor
        }}
        edges {{
          cursor
          node {{
            id
            name
            description
          }}
        }}
      }}
    }}
  }}
}}
"""

OPEN_PULL_REQUEST_QUERY: Final[str] = f"""
query GetOpenPullRequest(
  $owner: String!
  $name: String!
  $baseRefName: String!
  $headRefName: String!
) {{
  repository(owner: $owner, name: $name) {{
    pullRequests(
      baseRefName: $baseRefName
      headRefName: $headRefName
      last: 1
      states: [OPEN]
    ) {{
      nodes {{{_PULL_REQUEST_FIELDS}      }}
    }}
  }}
}}
"""

CREATE_PULL_REQUEST_MUTATION: Final[str] = f"""
mutation CreatePullRequest($input: CreatePullRequestInput!) {{
  createPullRequest(input: $input) {{
    pullRequest {{{_PULL_REQUEST_FIELDS}    }}
  }}
}}
"""

UPDATE_PULL_REQUEST_MUTATION: Final[str] = f"""
mutation UpdatePullRequest($input: UpdatePullRequestInput!) {{
  updatePullRequest(input: $input) {{
    pullRequest {{{_PULL_REQUEST_FIELDS}    }}
  }}
}}
"""

CLOSE_PULL_REQUEST_MUTATION: Final[str] = f"""
mutation ClosePullRequest($input: ClosePullRequestInput!) {{
  closePullRequest(input: $input) {{
    pullRequest {{{_PULL_REQUEST_FIELDS}    }}
  }}
}}
"""

ADD_COMMENT_MUTATION: Final[str] = """
mutation AddComment($input: AddCommentInput!) {
  addComment(input: $input) {
    commentEdge {
      node { url }
    }
  }
}
"""

ENABLE_AUTO_MERGE_MUTATION: Final[str] = f"""
mutation EnablePullRequestAutoMerge($input: EnablePullRequestAutoMergeInput!) {{
  enablePullRequestAutoMerge(input: $input) {{
    pullRequest {{{_PULL_REQUEST_FIELDS}    }}
  }}
}}
"""
