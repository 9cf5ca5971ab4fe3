"""Table schemas and column definitions for every collection in the local store."""

JOB_COLUMNS = [
    'Job ID', 'Job Title', 'Company Name', 'Location', 'Postal Code', 'Hourly Rate', 'Distance',
    'Company Rating', 'Applicant Count', 'Duration', 'Job Type', 'Description',
    'Required Certificates', 'Start Date', 'End Date', 'Status', 'Created At', 'Source'
]

APPLICATION_COLUMNS = [
    'Job ID', 'User ID', 'Message', 'Status', 'Applied At', 'Updated At'
]

CERTIFICATE_COLUMNS = [
    'Certificate ID', 'User ID', 'Type', 'Number', 'Holder Name', 'Issue Date', 'Expiration Date',
    'Status', 'Issuing Authority', 'Competencies', 'Verified'
]

CERTIFICATE_ALERT_COLUMNS = [
    'Alert ID', 'User ID', 'Certificate ID', 'Certificate Type', 'Certificate Number', 'Alert Type',
    'Alert Date', 'Expiry Date', 'Days Until Expiry', 'Sent', 'Sent At', 'Action Taken', 'Action Taken At'
]

NOTIFICATION_COLUMNS = [
    'Notification ID', 'User ID', 'Category', 'Title', 'Body', 'Created At', 'Read', 'Urgent', 'Data'
]

INVOICE_COLUMNS = [
    'Invoice Number', 'Type', 'Guard ID', 'Company ID', 'Issue Date', 'Due Date', 'Client Name',
    'Subtotal', 'BTW Amount', 'Total', 'Payment Status', 'Line Items', 'Notes'
]

PAYMENT_COLUMNS = [
    'Payment ID', 'Type', 'Guard ID', 'Amount', 'Currency', 'Recipient IBAN', 'Recipient Name',
    'Description', 'Reference', 'Status', 'Bank BIC', 'Provider ID', 'Refunded Amount',
    'Created At', 'Updated At', 'Error'
]

SHIFT_COLUMNS = [
    'Shift ID', 'Guard ID', 'Job ID', 'Start', 'End', 'Hours', 'Earnings', 'Own Equipment',
    'Has Insurance', 'Per Project', 'Autonomous', 'Flexible Hours', 'Client Interaction',
    'Delegated', 'Substitute', 'Skill Level'
]

EXPENSE_COLUMNS = [
    'Expense ID', 'Guard ID', 'Date', 'Category', 'Description', 'Amount', 'BTW Amount'
]

AUDIT_COLUMNS = [
    'Action', 'Entity ID', 'User ID', 'Details', 'Timestamp'
]

# table name -> columns
TABLES = {
    'jobs': JOB_COLUMNS,
    'applications': APPLICATION_COLUMNS,
    'certificates': CERTIFICATE_COLUMNS,
    'certificate_alerts': CERTIFICATE_ALERT_COLUMNS,
    'notifications': NOTIFICATION_COLUMNS,
    'invoices': INVOICE_COLUMNS,
    'payments': PAYMENT_COLUMNS,
    'shifts': SHIFT_COLUMNS,
    'expenses': EXPENSE_COLUMNS,
    'audit_log': AUDIT_COLUMNS,
}

# Columns indexed per table for lookups
TABLE_INDEXES = {
    'jobs': [('Job ID', 'Company Name'), ('Status',)],
    'applications': [('Job ID', 'User ID'), ('User ID',)],
    'certificates': [('Certificate ID',), ('User ID',)],
    'certificate_alerts': [('Certificate ID', 'Alert Type')],
    'notifications': [('User ID',)],
    'invoices': [('Invoice Number',), ('Guard ID',)],
    'payments': [('Payment ID',), ('Guard ID',)],
    'shifts': [('Guard ID',)],
    'expenses': [('Guard ID',)],
}
