"""
Submissions module.

- Create a free-text submission (name, email, message); email is not checked
  against registered users.
- Show one submission (gated by the registered-email check).
- List every submission, newest first.
"""
