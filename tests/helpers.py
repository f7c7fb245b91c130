from gitsite.models import CommitInfo

NOW = 1_700_000_000


def make_commit(oid="a" * 40, summary="Initial commit", author="Ada", date=NOW - 3600, **kw):
    return CommitInfo(oid=oid, short_oid=oid[:7], author=author, author_email=f"{author.lower()}@example.com",
                      committer=kw.pop("committer", author), summary=summary,
                      message=kw.pop("message", summary), date=date, **kw)
