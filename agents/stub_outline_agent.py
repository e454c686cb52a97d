from __future__ import annotations

import hashlib
from collections import Counter
from typing import List, Sequence

from lib.media_policy import needs_image
from schemas.blueprint import Blueprint, SectionTemplate
from schemas.common import MediaPolicy, Tone
from schemas.outline import OutlineParams, OutlineSection


HEADING_TEMPLATES = {
    "hero": [
        "Transform Your {} Today",
        "The Ultimate Guide to {}",
        "Master {}: Expert Solutions",
        "Discover the Power of {}",
        "Revolutionize Your {} Experience",
        "The Complete {} Handbook",
    ],
    "content": [
        "Understanding {}: Key Insights",
        "Essential {} Strategies",
        "How {} Can Benefit You",
        "The Science Behind {}",
        "Advanced {} Techniques",
        "Getting Started with {}",
    ],
    "testimonial": [
        "What Our Clients Say About {}",
        "Success Stories: {} in Action",
        "Real Results from {} Users",
        "Customer Experiences with {}",
        "Testimonials: {} Success",
    ],
    "pricing": [
        "Choose Your {} Plan",
        "Affordable {} Solutions",
        "{} Pricing That Works",
        "Investment Options for {}",
        "Find Your Perfect {} Package",
    ],
    "team": [
        "Meet the {} Experts",
        "Our {} Team",
        "The People Behind {}",
        "Expert {} Professionals",
        "Your {} Support Team",
    ],
    "faq": [
        "Frequently Asked Questions About {}",
        "Common {} Questions Answered",
        "{} FAQ: Everything You Need to Know",
        "Your {} Questions, Answered",
    ],
    "cta": [
        "Ready to Start Your {} Journey?",
        "Take Action with {} Today",
        "Get Started with {} Now",
        "Transform Your Business with {}",
        "Begin Your {} Success Story",
    ],
}

SUBHEADING_TEMPLATES = {
    "hero": ["Why Choose {}?", "Key Benefits", "Get Started Today"],
    "content": ["Core Concepts", "Best Practices", "Implementation Guide", "Common Challenges", "Expert Tips"],
    "testimonial": ["Customer Feedback", "Success Metrics", "Case Studies"],
    "pricing": ["Plan Comparison", "Value Proposition", "Money-Back Guarantee"],
    "team": ["Leadership Team", "Industry Experts", "Support Staff"],
    "faq": ["Getting Started", "Technical Questions", "Billing & Support"],
    "cta": ["Next Steps", "Contact Information", "Free Consultation"],
}

STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "about", "into", "through", "during", "before", "after", "above", "below",
    "up", "down", "out", "off", "over", "under", "again", "further", "then", "once",
    "here", "there", "when", "where", "why", "how", "all", "any", "both", "each",
    "few", "more", "most", "other", "some", "such", "no", "nor", "not", "only",
    "own", "same", "so", "than", "too", "very", "can", "will", "just", "should",
    "now", "create", "content", "write", "article", "blog", "post", "page",
}

DEFAULT_TOPIC = "Your Topic"


def _digest_int(*parts: object) -> int:
    seed = "|".join(str(p) for p in parts)
    return int(hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8], 16)


def _ucfirst(s: str) -> str:
    return s[:1].upper() + s[1:]


def extract_key_terms(brief: str, limit: int = 3) -> List[str]:
    words = [w.strip(".,;:!?\"'()[]") for w in (brief or "").lower().split()]
    words = [w for w in words if len(w) > 3 and w not in STOP_WORDS]
    return [w for w, _ in Counter(words).most_common(limit)]


def default_templates(params: OutlineParams) -> List[SectionTemplate]:
    templates = [
        SectionTemplate(type="hero", word_target=100, media_policy=MediaPolicy.required),
        SectionTemplate(type="content", word_target=300, media_policy=MediaPolicy.optional),
        SectionTemplate(type="content", word_target=250, media_policy=MediaPolicy.optional),
    ]
    if params.tone in (Tone.professional, Tone.authoritative):
        templates.append(SectionTemplate(type="testimonial", word_target=150, media_policy=MediaPolicy.required))
    if params.audience:
        templates.append(SectionTemplate(type="cta", word_target=100, media_policy=MediaPolicy.optional))
    return templates


class StubOutlineAgent:
    """
    Offline outline generator for development and fallback.

    Output is a pure function of (brief, blueprint, tone, audience): template
    choices come from a sha256 digest instead of a random draw, so the same
    request always yields the same outline. It performs no I/O and does not raise
    for any validated input.
    """

    name = "stub_outline"

    def _heading(self, brief: str, index: int, template: SectionTemplate, topic: str) -> str:
        if template.heading:
            return template.heading
        options = HEADING_TEMPLATES.get(template.type, HEADING_TEMPLATES["content"])
        chosen = options[_digest_int(brief, index, template.type, "heading") % len(options)]
        return chosen.format(_ucfirst(topic))

    def _subheadings(self, brief: str, index: int, section_type: str, topic: str) -> List[str]:
        options = SUBHEADING_TEMPLATES.get(section_type, SUBHEADING_TEMPLATES["content"])
        count = min(2 + _digest_int(brief, index, section_type, "count") % 2, len(options))
        ranked = sorted(range(len(options)), key=lambda i: _digest_int(brief, index, options[i]))
        picked = sorted(ranked[:count])
        return [options[i].format(topic) if "{}" in options[i] else options[i] for i in picked]

    def _sections(self, params: OutlineParams, templates: Sequence[SectionTemplate], topic: str) -> List[OutlineSection]:
        sections: List[OutlineSection] = []
        for index, template in enumerate(templates):
            sections.append(
                OutlineSection(
                    id=f"section-{index + 1}",
                    heading=self._heading(params.brief, index, template, topic),
                    type=template.type,
                    target_words=template.word_target,
                    needs_image=needs_image(None, template),
                    mode="stub",
                    subheadings=self._subheadings(params.brief, index, template.type, topic),
                )
            )
        return sections

    def generate(self, params: OutlineParams, blueprint: Blueprint) -> List[OutlineSection]:
        terms = extract_key_terms(params.brief)
        topic = terms[0] if terms else DEFAULT_TOPIC
        templates = blueprint.sections or default_templates(params)
        return self._sections(params, templates, topic)
