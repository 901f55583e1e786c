"""
Naukri locator cascades

Every tuple is ordered: earlier entries are preferred, later ones cover older
or experimental markup. Strings are Playwright selectors (CSS unless prefixed
with ``xpath=``; ``:has-text()`` matches case-insensitively).
"""

SITE_DOMAIN = "naukri"

# URL fragments only reachable when signed in
MEMBER_URL_MARKERS = ("mynaukri", "/v1/user/dashboard")

# === Session ===

LOGGED_IN_INDICATORS = (
    "div.nI-gNb-bar1",
    "a.user-name",
    "div.user-name",
    "div.nI-gNb-nav__visible",
    "img.user-pic",
    "[data-ga-track*='My Naukri']",
    "a[href*='mynaukri.naukri.com']",
    ".nI-gNb-info",
    "div.view-profile-wrapper",
    "a[href*='/profile-summary']",
    "div.user-info",
    "div.user-avatar",
    "div.profile-section",
    "xpath=//*[contains(text(), 'My Naukri')]",
    "xpath=//*[contains(text(), 'My Profile')]",
    "xpath=//*[contains(text(), 'Logout')]",
    ".dashboard-container",
    ".profile-completion",
    ".recommended-jobs",
)

LOGGED_OUT_INDICATORS = (
    "a#login_Layer",
    "a.loginButton",
    "a.nI-gNb-lg-rg__login",
    "xpath=//a[contains(text(), 'Login')]",
    "xpath=//button[contains(text(), 'Login')]",
)

HOMEPAGE_LOGIN_LINKS = (
    "a#login_Layer",
    "a.nI-gNb-lg-rg__login",
    "a[title='Jobseeker Login']",
    "a[href*='login']",
)

EMAIL_INPUTS = (
    "input[placeholder*='Email ID']",
    "input[placeholder*='Username']",
    "#usernameField",
    "#emailTxt",
    "input[name='email']",
    "input[type='email']",
)

PASSWORD_INPUTS = (
    "input[placeholder*='Password']",
    "input[type='password']",
    "#passwordField",
    "input[name='password']",
)

LOGIN_BUTTONS = (
    "button[type='submit']",
    "button.blue-btn",
    "button.loginButton",
    "input[type='submit'][value='Login']",
    "button.btn-primary",
    "button.waves-effect",
    "xpath=//button[normalize-space()='Login']",
    "xpath=//button[contains(normalize-space(), 'Login')]",
)

LOGIN_ERROR_MESSAGES = (
    ".error-txt",
    ".error",
    ".errorMsg",
    "div.erLbl",
    "span.erLbl",
    ".commonErrorMsg",
    "[class*='error']",
    "[class*='alert']",
)

# === Search results ===

# Wrapper elements only; card selectors belong in CARDS
RESULT_CONTAINERS = (
    "div.styles_job-listing-container__OCfZC",
    "div.list",
    "div.listContainer",
    "section.listContainer",
    "div[data-testid='srp-jobList-container']",
    "div.srp_container",
)

# Probed against the whole page when no container matched
DIRECT_CARDS = (
    "article.jobTuple",
    "div.srp-jobtuple-wrapper",
    "div.jobTuple",
    "div.jobTupleHeader",
    "div[data-job-id]",
)

CARDS = (
    "article.jobTuple",
    "div.srp-jobtuple-wrapper",
    "div.jobTuple",
    "div.jobTupleHeader",
)

NO_RESULTS_MARKERS = (
    "div.styles_no-results-container",
    "div.no-results",
    "xpath=//*[contains(text(), 'No matching jobs found')]",
    "xpath=//*[contains(text(), 'no jobs found')]",
)

# === Card fields ===

CARD_TITLE = (
    "a.title",
    ".jobTitle.ellipsis",
    "a.jobTitle",
    ".title.ellipsis",
    "a[title]",
    "div.title a",
    "div.jobTitle a",
)

CARD_COMPANY = (
    "a.comp-name",
    "a.companyName",
    "a.company-name",
    "div.companyName span",
    "div.comp-name a",
    "span.comp-name",
    ".companyInfo.subTitle.ellipsis",
)

CARD_LOCATION = (
    "span.locWdth",
    "span.location",
    ".location.ellipsis",
    "div.loc span",
    "span.location-link",
    "div.location span",
    "span[title*='location']",
    ".new-joblist-location-item",
)

CARD_EXPERIENCE = (
    "span.expwdth",
    "span.experience",
    ".experience.ellipsis",
    "div.exp span",
    "span.exp-container",
    "li.experience",
    ".exp > span",
)

CARD_SALARY = (
    "span.sal-wrap span",
    "span.salary",
    ".salary.ellipsis",
    "div.sal span",
    "span.salary-container",
    "span[title*='salary']",
    ".salary > span",
)

CARD_SKILLS = (
    "ul.tags-gt li",
    "ul.skill-tags li",
    "div.tag-li span",
    "ul.skills li",
    "div.skills-section span",
    ".chip.skill",
    ".tag-container > span",
)

CARD_DESCRIPTION = (
    "span.job-desc",
    "div.job-description",
    "div.desc",
    "div.jobDescription",
    "p.job-desc",
    ".job-description-main",
)

# === Detail page ===

DETAIL_DESCRIPTION = (
    "div.styles_JDC__dang-inner-html__h0K4t",
    "section.job-desc",
    "div.dang-inner-html",
    "div.JDC__dang-inner-html",
    "div.jd-desc",
    "div.description",
    "div#jobDescription",
    "div.job-details-section",
)

DETAIL_SKILLS = (
    "div.styles_key-skill__GIPn_ a.styles_chip__7YCfG",
    "div.key-skill span",
    "div.skills-container a",
    "div.keySkills span",
    ".styles_chips__vOE84 > span",
)

EXTERNAL_APPLY = (
    "#apply-on-company-site-button",
    ".styles_company-site-button__C_2YK",
    ".company-site-button",
    "button[data-action='apply-external']",
    "a.ext-apply-btn",
    "button:has-text('apply on company')",
    "a:has-text('apply on company')",
)

STANDARD_APPLY = (
    "button#apply-button",
    "button.btn-apply",
    "button.apply-button",
    "xpath=//button[normalize-space()='Apply']",
)
