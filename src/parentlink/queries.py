"""GraphQL documents used by the reconciliation pipeline.

All documents are parameterized through GraphQL variables; nothing is
string-interpolated.
"""

from __future__ import annotations

PROJECT_FIELDS_QUERY = """
query($org: String!, $number: Int!, $first: Int!, $after: String) {
  organization(login: $org) {
    projectV2(number: $number) {
      id
      fields(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          __typename
          ... on ProjectV2FieldCommon {
            id
            name
          }
          ... on ProjectV2SingleSelectField {
            options {
              id
              name
              description
            }
          }
        }
      }
    }
  }
}
"""

ISSUE_BY_NUMBER_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      id
      title
    }
  }
}
"""

PROJECT_ITEMS_QUERY = """
query($org: String!, $number: Int!, $first: Int!, $after: String, $fieldName: String!) {
  organization(login: $org) {
    projectV2(number: $number) {
      items(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          type
          content {
            ... on Issue {
              id
              title
              parent {
                id
              }
            }
          }
          fieldValueByName(name: $fieldName) {
            ... on ProjectV2ItemFieldSingleSelectValue {
              id
              optionId
            }
          }
        }
      }
    }
  }
}
"""

ADD_SUB_ISSUE_MUTATION = """
mutation($parentId: ID!, $childId: ID!, $clientMutationId: String!) {
  addSubIssue(
    input: {issueId: $parentId, subIssueId: $childId, clientMutationId: $clientMutationId}
  ) {
    clientMutationId
    subIssue {
      id
    }
  }
}
"""

__all__ = [
    "ADD_SUB_ISSUE_MUTATION",
    "ISSUE_BY_NUMBER_QUERY",
    "PROJECT_FIELDS_QUERY",
    "PROJECT_ITEMS_QUERY",
]
