"""pipesheet - two-way sync between a Pipedrive CRM and a spreadsheet grid."""

__version__ = "0.1.0"
