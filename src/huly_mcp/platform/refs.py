"""Platform class, space and category references used by the tools."""

import secrets
import time

# core
SPACE_SPACE = "core:space:Space"
SPACE_WORKSPACE = "core:space:Workspace"
SPACE_TX = "core:space:Tx"
TX_CREATE_DOC = "core:class:TxCreateDoc"
TX_UPDATE_DOC = "core:class:TxUpdateDoc"
TX_REMOVE_DOC = "core:class:TxRemoveDoc"

# tracker
PROJECT = "tracker:class:Project"
ISSUE = "tracker:class:Issue"
MILESTONE = "tracker:class:Milestone"
ISSUE_STATUS = "tracker:class:IssueStatus"
TASK_TYPE_ISSUE = "tracker:taskTypes:Issue"
CATEGORY_OTHER = "tracker:category:Other"

# task
TASK_TYPE = "task:class:TaskType"
PROJECT_TYPE = "task:class:ProjectType"

# tags
TAG_ELEMENT = "tags:class:TagElement"
TAG_REFERENCE = "tags:class:TagReference"

# contact
PERSON = "contact:class:Person"
CHANNEL = "contact:class:Channel"

# collections
COLLECTION_ISSUES = "issues"
COLLECTION_SUB_ISSUES = "subIssues"
COLLECTION_LABELS = "labels"

SORT_ASCENDING = 1
SORT_DESCENDING = -1


def generate_id() -> str:
    """Generate a 24-char hex document id (timestamp prefix + random suffix)."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"
