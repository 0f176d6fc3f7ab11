"""Digest parsing: provider HTML layouts, the Webbjobb text layout and the
whole-email fallback."""
from unittest.mock import patch

import pytest

from jobfilter.models import UNKNOWN_COMPANY, Provider
from jobfilter.parsers import HTML_PARSERS, TEXT_PARSERS, parse_job_digest
from jobfilter.parsers.base import build_details, clean_text
from jobfilter.parsers.linkedin import LinkedInParser, canonical_job_url, job_id_from_url
from jobfilter.parsers.webbjobb import strip_arrow

LINKEDIN_SENDER = "LinkedIn <jobs-noreply@linkedin.com>"
WEBBJOBB_SENDER = "Webbjobb.io <robot@mail.webbjobb.io>"
INDEED_SENDER = "Indeed <donotreply@jobalert.indeed.com>"
DEMANDO_SENDER = "Demando <reply@demando.io>"


def test_every_provider_is_registered():
    assert set(HTML_PARSERS) == set(Provider)
    assert Provider.WEBBJOBB in TEXT_PARSERS


def test_helpers():
    assert clean_text("  Senior \n\t Dev  ") == "Senior Dev"
    assert build_details("Dev", UNKNOWN_COMPANY, "", "Python") == "Dev - Python"
    assert strip_arrow("Backend Developer →") == "Backend Developer"


class TestLinkedIn:
    def _parse(self, make_email, html):
        return parse_job_digest(make_email(sender=LINKEDIN_SENDER, subject="Your job alert", html=html))

    def test_parses_job_links(self, make_email):
        html = """
          <table>
            <tr><td>
              <a href="https://www.linkedin.com/comm/jobs/view/1234567/?trackingId=abc">Backend Developer</a>
              <span>AVTECH Sweden &middot; Stockholm (Hybrid)</span>
            </td></tr>
            <tr><td>
              <a href="https://www.linkedin.com/comm/jobs/view/7654321/?trackingId=xyz">Senior Backend Engineer</a>
              <span>Spotify &middot; Stockholm</span>
            </td></tr>
          </table>
        """
        jobs = self._parse(make_email, html)

        assert [j.title for j in jobs] == ["Backend Developer", "Senior Backend Engineer"]
        assert jobs[0].links == ["https://www.linkedin.com/jobs/view/1234567/"]
        assert jobs[1].links == ["https://www.linkedin.com/jobs/view/7654321/"]
        assert all(j.provider is Provider.LINKEDIN for j in jobs)

    def test_deduplicates_by_job_id(self, make_email):
        html = """
          <div>
            <a href="https://www.linkedin.com/comm/jobs/view/1234567/?trackingId=logo">Backend Developer</a>
            <a href="https://www.linkedin.com/comm/jobs/view/1234567/?trackingId=title">Backend Developer</a>
          </div>
        """
        assert len(self._parse(make_email, html)) == 1

    def test_skips_see_all_jobs(self, make_email):
        html = """
          <div>
            <a href="https://www.linkedin.com/comm/jobs/view/1234567/">Backend Developer</a>
            <a href="https://www.linkedin.com/comm/jobs/search">See all jobs</a>
          </div>
        """
        jobs = self._parse(make_email, html)
        assert [j.title for j in jobs] == ["Backend Developer"]

    def test_canonical_url_drops_tracking(self, make_email):
        html = '<a href="https://www.linkedin.com/comm/jobs/view/9999999/?trackingId=abc123&refId=xyz&trk=eml">Cool Job</a>'
        jobs = self._parse(make_email, html)
        assert jobs[0].links[0] == "https://www.linkedin.com/jobs/view/9999999/"

    def test_job_card_company_and_location(self, make_email):
        html = """
          <div data-test-id="job-card">
            <table><tr><td>
              <a href="https://www.linkedin.com/comm/jobs/view/111/?trk=logo"><img alt=""></a>
            </td></tr></table>
            <table><tr><td>
              <a class="font-bold" href="https://www.linkedin.com/comm/jobs/view/111/?trk=title">Backend Developer</a>
              <a href="https://www.linkedin.com/comm/jobs/view/111/?trk=cta">View job</a>
              <p>AVTECH Sweden · Stockholm (Hybrid) Actively recruiting</p>
            </td></tr></table>
          </div>
          <div data-test-id="job-card">
            <table><tr><td>
              <a class="font-bold" href="https://www.linkedin.com/comm/jobs/view/222/?trk=title">Platform Engineer</a>
              <p>Spotify · Stockholm 3 connections</p>
            </td></tr></table>
          </div>
        """
        jobs = self._parse(make_email, html)

        assert len(jobs) == 2
        assert (jobs[0].title, jobs[0].company, jobs[0].location) == (
            "Backend Developer", "AVTECH Sweden", "Stockholm (Hybrid)",
        )
        assert (jobs[1].company, jobs[1].location) == ("Spotify", "Stockholm")
        assert "AVTECH Sweden" in jobs[0].details

    def test_missing_company_uses_sentinel(self, make_email):
        html = '<a href="https://www.linkedin.com/comm/jobs/view/5/">Data Engineer</a>'
        job = self._parse(make_email, html)[0]
        assert job.company == UNKNOWN_COMPANY
        assert job.location == ""
        assert not job.has_company

    def test_job_id_helpers(self):
        assert job_id_from_url("https://www.linkedin.com/comm/jobs/view/42/?x=1") == "42"
        assert job_id_from_url("https://www.linkedin.com/jobs/view/43") == "43"
        assert job_id_from_url("https://www.linkedin.com/comm/jobs/search") is None
        assert canonical_job_url("42") == "https://www.linkedin.com/jobs/view/42/"


class TestWebbjobb:
    def test_parses_html_cards(self, make_email):
        html = """
          <div class="link even" style="background-color: #f8f8f8;">
            <p>
              <strong><a href="http://tracking.webbjobb.io/f/a/abc123">Senior Backend Developer →</a></strong>
              <br/>
              Avaron AB, <em style="color: #919093;">Stockholm</em>
              <br/>
              <span class="tag tag-tech">C#</span>
              <span class="tag tag-tech">Javascript</span>
            </p>
          </div>
          <div class="link" style="background-color: #fff;">
            <p>
              <strong><a href="http://tracking.webbjobb.io/f/a/def456">ServiceNow Developer →</a></strong>
              <br/>
              Avaron AB, <em style="color: #919093;">Stockholm</em>
              <br/>
              <span class="tag tag-tech">CSS</span>
              <span class="tag tag-tech">HTML</span>
            </p>
          </div>
        """
        jobs = parse_job_digest(make_email(sender=WEBBJOBB_SENDER, subject="Veckans jobb", html=html))

        assert len(jobs) == 2
        assert jobs[0].title == "Senior Backend Developer"
        assert jobs[0].company == "Avaron AB"
        assert jobs[0].location == "Stockholm"
        assert jobs[0].provider is Provider.WEBBJOBB
        assert "tracking.webbjobb.io" in jobs[0].links[0]
        assert jobs[1].title == "ServiceNow Developer"

    def test_tech_tags_in_details(self, make_email):
        html = """
          <div class="link"><p>
            <strong><a href="http://tracking.webbjobb.io/f/a/x">Fullstack Dev →</a></strong>
            <br/>Acme, <em>Stockholm</em><br/>
            <span class="tag tag-tech">React.js</span>
            <span class="tag tag-tech">Node.js</span>
          </p></div>
        """
        job = parse_job_digest(make_email(sender=WEBBJOBB_SENDER, html=html))[0]
        assert "React.js" in job.details
        assert "Node.js" in job.details
        assert job.details.count("React.js") == 1

    def test_text_layout(self, make_email):
        body = "\n".join([
            "Hej!",
            "Vi har hittat nya jobb.",
            "Veckans jobb",
            "Senior Dynamics 365 CE och Power Platform Developer →",
            "Avaron AB, Stockholm",
            "C# Javascript React.js Azure",
            "",
            "ServiceNow Developer →",
            "Avaron AB, Stockholm",
            "CSS Javascript HTML UI",
            "",
            "Fullstackutvecklare med fokus på Java backend →",
            "Avaron AB, Stockholm",
            "Java React.js Vue.js",
            "",
            "Senast från bloggen",
            "Nytt betalningsystem – och nu med Apple Pay! →",
        ])
        jobs = parse_job_digest(make_email(sender="Webbjobb.io <info@webbjobb.io>", body=body))

        assert len(jobs) == 3
        assert jobs[0].title == "Senior Dynamics 365 CE och Power Platform Developer"
        assert jobs[0].company == "Avaron AB"
        assert jobs[0].location == "Stockholm"
        assert jobs[0].provider is Provider.WEBBJOBB
        assert "Azure" in jobs[0].details
        assert jobs[1].title == "ServiceNow Developer"
        assert "Fullstackutvecklare" in jobs[2].title

    def test_text_skips_newsletter_lines(self, make_email):
        body = "\n".join([
            "Backend Developer →",
            "Acme Corp, Stockholm",
            "Node.js TypeScript",
            "",
            "Nytt betalningsystem – och nu med Apple Pay! →",
            "Ändra inställningar →",
        ])
        jobs = parse_job_digest(make_email(sender="Webbjobb.io <info@webbjobb.io>", body=body))
        assert [j.title for j in jobs] == ["Backend Developer"]

    def test_text_line_without_comma_uses_sentinel(self):
        jobs = TEXT_PARSERS[Provider.WEBBJOBB]("Backend Developer →\nAcme Corp\n")
        assert jobs[0].company == UNKNOWN_COMPANY
        assert jobs[0].location == ""

    def test_text_fallback_when_html_has_no_cards(self, make_email):
        email = make_email(
            sender=WEBBJOBB_SENDER,
            html="<p>Veckans jobb</p>",
            body="Backend Developer →\nAcme Corp, Göteborg\nhttps://webbjobb.io/jobb/1\n",
        )
        jobs = parse_job_digest(email)
        assert len(jobs) == 1
        assert jobs[0].location == "Göteborg"
        assert jobs[0].links == ["https://webbjobb.io/jobb/1"]


INDEED_HTML = """
<table>
  <tr>
    <td class="pb-24" style="padding:0 0 32px">
      <a href="https://se.indeed.com/rc/clk/dl?jk=da7a0ace1767a198&from=ja" style="display:block">
        <table role="presentation" width="100%">
          <tr><td>
            <h2><a href="https://se.indeed.com/rc/clk/dl?jk=da7a0ace1767a198" class="strong-text-link">Junior Frontend Developer</a></h2>
          </td></tr>
          <tr><td>
            <table role="presentation">
              <tr><td style="padding:0 12px 0 0;color:#2d2d2d;font-size:14px;line-height:21px">GRIXX FOOD AB</td></tr>
            </table>
          </td></tr>
          <tr><td style="color:#2d2d2d;font-size:14px;line-height:21px">Stockholm</td></tr>
          <tr><td style="padding:0;color:#767676;font-size:14px;line-height:21px">Som Junior Frontend Developer kommer du att arbeta med utveckling.</td></tr>
        </table>
      </a>
    </td>
  </tr>
  <tr>
    <td class="pb-24" style="padding:0 0 32px">
      <a href="https://se.indeed.com/rc/clk/dl?jk=fb5a69847449c067&from=ja" style="display:block">
        <table role="presentation" width="100%">
          <tr><td>
            <h2><a href="https://se.indeed.com/rc/clk/dl?jk=fb5a69847449c067" class="strong-text-link">Frontend utvecklare till Svea Banks designsystem</a></h2>
          </td></tr>
          <tr><td>
            <table role="presentation">
              <tr><td style="padding:0 12px 0 0;color:#2d2d2d;font-size:14px;line-height:21px">Svea Bank</td></tr>
            </table>
          </td></tr>
          <tr><td style="color:#2d2d2d;font-size:14px;line-height:21px">Solna</td></tr>
        </table>
      </a>
    </td>
  </tr>
</table>
"""


def test_indeed_cards(make_email):
    jobs = parse_job_digest(make_email(sender=INDEED_SENDER, html=INDEED_HTML))

    assert len(jobs) == 2
    assert (jobs[0].title, jobs[0].company, jobs[0].location) == (
        "Junior Frontend Developer", "GRIXX FOOD AB", "Stockholm",
    )
    assert "arbeta med utveckling" in jobs[0].details
    assert jobs[0].provider is Provider.INDEED
    assert "jk=da7a0ace1767a198" in jobs[0].links[0]
    assert (jobs[1].title, jobs[1].company, jobs[1].location) == (
        "Frontend utvecklare till Svea Banks designsystem", "Svea Bank", "Solna",
    )


DEMANDO_HTML = """
<div style="border:1px solid #dddddd;">
  <table role="presentation" width="100%">
    <tr>
      <td class="content-item" style="padding: 32px 16px">
        <table role="presentation" width="100%">
          <tr><td><img src="https://demando.imgix.net/company/abc" width="50" /></td></tr>
          <tr><td><h3><a href="http://url1441.demando.io/ls/click?upn=abc123">Exopen</a></h3></td></tr>
          <tr><td><h3 class="title"><a href="http://url1441.demando.io/ls/click?upn=def456">Full Stack Engineer</a></h3></td></tr>
          <tr><td>
            <p><img src="https://demando.se/assets/images/icon-pin.png" width="16" />&nbsp;Fully remote, Stockholm (Full-time)</p>
            <p><img src="https://demando.se/assets/images/icon-money.png" width="16" />&nbsp;50 000 - 80 000 SEK per month</p>
          </td></tr>
        </table>
      </td>
    </tr>
  </table>
</div>
"""


def test_demando_cards(make_email):
    jobs = parse_job_digest(make_email(sender=DEMANDO_SENDER, html=DEMANDO_HTML))

    assert len(jobs) == 1
    assert jobs[0].title == "Full Stack Engineer"
    assert jobs[0].company == "Exopen"
    assert jobs[0].provider is Provider.DEMANDO
    assert "Stockholm" in jobs[0].location
    assert "SEK" not in jobs[0].location
    assert "demando.io" in jobs[0].links[0]


class TestFallback:
    def test_unknown_sender_becomes_single_posting(self, make_email):
        email = make_email(
            sender="test@test.com",
            subject="Single job email",
            body="We have a role for you",
            links=["https://example.com/job"],
        )
        jobs = parse_job_digest(email)

        assert len(jobs) == 1
        assert jobs[0].title == "Single job email"
        assert jobs[0].company == UNKNOWN_COMPANY
        assert jobs[0].details == "We have a role for you"
        assert jobs[0].links == ["https://example.com/job"]
        assert jobs[0].provider is Provider.UNKNOWN

    def test_provider_without_parser(self, make_email):
        email = make_email(sender="noreply@glassdoor.com", subject="Jobs for you", html="<p>x</p>")
        jobs = parse_job_digest(email)
        assert len(jobs) == 1
        assert jobs[0].provider is Provider.GLASSDOOR

    def test_parser_crash_degrades_to_fallback(self, make_email):
        email = make_email(
            sender=LINKEDIN_SENDER,
            subject="Your job alert",
            html='<a href="https://www.linkedin.com/comm/jobs/view/1/">Backend Developer</a>',
        )
        with patch.object(LinkedInParser, "extract", side_effect=RuntimeError("layout changed")):
            jobs = parse_job_digest(email)
        assert [j.title for j in jobs] == ["Your job alert"]

    def test_empty_html_result_falls_back(self, make_email):
        email = make_email(sender=INDEED_SENDER, subject="Nya jobb", html="<table></table>")
        jobs = parse_job_digest(email)
        assert [j.title for j in jobs] == ["Nya jobb"]

    @pytest.mark.parametrize("provider", [Provider.LINKEDIN, Provider.DEMANDO])
    def test_explicit_provider_skips_detection(self, make_email, provider):
        email = make_email(sender="relay@mail.com", subject="Forwarded")
        jobs = parse_job_digest(email, provider)
        assert jobs[0].provider is provider
