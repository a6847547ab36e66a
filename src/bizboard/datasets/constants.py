"""Spreadsheet column headers for the bookings and proposals exports."""

# Bookings
BOOKING_INTERNAL_ID = "Internal ID"
BOOKING_YEAR = "Year"
BOOKING_ACCOUNT_NAME = "Account Name"
BOOKING_OPPORTUNITY_NAME = "Opportunity Name"
BOOKING_PGI = "PGI"
BOOKING_VALUE_WT = "Auto Wt"
BOOKING_VALUE_UNWT = "Auto UnWt"
BOOKING_STAGE = "Stage"
BOOKING_CTT_SIGN_DATE = "CTT Sign Date"
BOOKING_SALES_STAGE_DATE = "Sales Stage Date"
BOOKING_MONTH = "Month"
BOOKING_QUARTER = "Quarter"
BOOKING_SEGMENT = "Segment"
BOOKING_SUB_SEGMENT = "Sub-Segment"
BOOKING_SECTOR = "Sector"
BOOKING_COUNTRY = "Country"

# Bookings stage code counted as sold
BOOKING_STAGE_SOLD = "S"

# Proposals
PROPOSAL_THOR_ID = "Thor ID"
PROPOSAL_APN_ID = "APN ID"
PROPOSAL_ACCOUNT_NAME = "Account Name"
PROPOSAL_OPPORTUNITY_NAME = "Opportunity Name"
PROPOSAL_VALUE = "Value"
PROPOSAL_COE_LEAD = "COE Lead"
PROPOSAL_STAGE = "Stage"
PROPOSAL_TARGET_QUARTER = "Target Quarter"
PROPOSAL_SEGMENT = "Segment"
PROPOSAL_START_DATE = "Start Date"
PROPOSAL_END_DATE = "End Date"

# Proposals stages
PROPOSAL_STAGE_IN_PROGRESS = "In Progress"
PROPOSAL_STAGE_WON = "Won"
PROPOSAL_STAGE_LOST = "Lost"
PROPOSAL_STAGE_SUBMITTED = "Submitted"
