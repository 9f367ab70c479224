"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates the database calls for a resource table.
Repositories hand back the database client's (data, error) result; they
neither raise on store errors nor reshape rows.
"""
