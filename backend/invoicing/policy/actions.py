# Overview: Action classes the role policy decides on.
# Each action is defined as: (code, name, description)


class PolicyAction:
    CREATE_INVOICE = "CREATE_INVOICE"
    UPDATE_INVOICE = "UPDATE_INVOICE"
    READ_INVOICE = "READ_INVOICE"  # read one or list by branch
    LIST_ALL_INVOICES = "LIST_ALL_INVOICES"
    DELETE_INVOICE = "DELETE_INVOICE"

    READ_WORKER = "READ_WORKER"
    LIST_BRANCH_WORKERS = "LIST_BRANCH_WORKERS"
    LIST_ALL_WORKERS = "LIST_ALL_WORKERS"

    RECONCILE_BRANCH = "RECONCILE_BRANCH"


ACTION_DEFINITIONS = [
    (PolicyAction.CREATE_INVOICE, "Create Invoice", "Create a sales receipt or expense invoice for a branch"),
    (PolicyAction.UPDATE_INVOICE, "Update Invoice", "Patch whitelisted fields of an existing invoice"),
    (PolicyAction.READ_INVOICE, "Read Invoices", "Read one invoice or list a branch's invoices"),
    (PolicyAction.LIST_ALL_INVOICES, "List All Invoices", "List invoices across every branch"),
    (PolicyAction.DELETE_INVOICE, "Delete Invoice", "Remove an invoice"),
    (PolicyAction.READ_WORKER, "Read Worker", "View a worker's profile"),
    (PolicyAction.LIST_BRANCH_WORKERS, "List Branch Workers", "List the workers of a branch"),
    (PolicyAction.LIST_ALL_WORKERS, "List All Workers", "List workers across every branch"),
    (PolicyAction.RECONCILE_BRANCH, "Reconcile Branch", "Rebuild a branch's invoice id lists from the invoice tables"),
]


def get_action_definition(code):
    """Get full definition for an action code."""
    for action in ACTION_DEFINITIONS:
        if action[0] == code:
            return {
                "code": action[0],
                "name": action[1],
                "description": action[2],
            }
    return None
