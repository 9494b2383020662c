'''
Rule table shipped with tidyurl. Users can extend/replace it via the config (see config.py).
'''
from typing import List

from .common import Json
from .rules import RuleTable


# removed from every url
GLOBAL_PARAMS = [
    # google analytics/urchin
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content', 'utm_id', 'utm_name',
    'utm_reader', 'utm_cid', 'utm_social', 'utm_brand', 'utm_viz_id', 'utm_pubreferrer', 'utm_swu',
    'utm_umg_et',
    'ga_source', 'ga_medium', 'ga_term', 'ga_content', 'ga_campaign', 'ga_place',
    'gclid', 'dclid', 'gclsrc', 'gs_l',

    # facebook
    'fbclid', 'fb_action_ids', 'fb_action_types', 'fb_source', 'fb_ref',
    'action_type_map', 'action_ref_map',

    # other ad networks/newsletters
    'yclid', '_openstat', 'msclkid', 'igshid', 'mc_eid', 'mc_cid', 'mkt_tok',
    'hmb_campaign', 'hmb_medium', 'hmb_source',
    '_hsenc', '_hsmi', '__hssc', '__hstc', '__hsfp', 'hsCtaTracking',
    'oly_anon_id', 'oly_enc_id', 'vero_id', 'wickedid', 'rb_clickid', 's_cid', 'ncid', 'sr_share',
]


RULES: List[Json] = [
    {
        'name' : 'Global',
        'match': r'.*',
        'rules': GLOBAL_PARAMS,
    },
    {
        'name' : 'audible.com',
        'match': r'www\.audible\.com',
        'flags': 'i',
        'rules': ['qid', 'sr', 'pf_rd_p', 'pf_rd_r', 'plink', 'ref'],
    },
    {
        'name' : 'bandcamp.com',
        'match': r'.*\.bandcamp\.com',
        'flags': 'i',
        'rules': [
            'from', 'search_item_id', 'search_item_type', 'search_match_part',
            'search_page_no', 'search_rank', 'search_sig',
        ],
    },
    {
        'name' : 'amazon',
        'match': r'(^|\.)amazon\.[a-z.]+$',
        'rules': [
            'ref', 'ref_', 'pf_rd_r', 'pf_rd_p', 'pf_rd_s', 'pf_rd_t', 'pf_rd_i', 'pf_rd_m',
            'pd_rd_r', 'pd_rd_w', 'pd_rd_wg', 'pd_rd_i', 'qid', 'sr', 'keywords', 'crid', 'sprefix',
            'dib', 'dib_tag', 'content-id', 'psc',
        ],
    },
    {
        'name'    : 'google.com',
        'match'   : r'^(www\.)?google\.[a-z.]+$',
        'rules'   : ['ved', 'ei', 'sa', 'usg', 'sxsrf', 'aqs', 'sourceid', 'uact', 'oq', 'gs_lcp', 'gs_lp', 'sclient', 'bih', 'biw'],
        'exclude' : [r'google\.[a-z.]+/recaptcha/'],
        'redirect': 'url',
    },
    {
        # e.g. https://www.google.com/amp/s/www.example.com/article
        'name' : 'Google AMP',
        'match': r'^www\.google\.[a-z.]+$',
        'amp'  : r'www\.google\.[a-z.]+/amp/s/(.*)',
    },
    {
        'name' : 'youtube.com',
        'match': r'^(www\.|m\.)?youtube\.com$',
        'rules': ['feature', 'ab_channel', 'si', 'pp', 'kw', 'embeds_referring_euri', 'source_ve_path'],
    },
    {
        'name'     : 'youtube.com redirect',
        'match'    : r'youtube\.com/redirect\?',
        'matchHref': True,
        'rules'    : ['event', 'redir_token'],
        'redirect' : 'q',
    },
    {
        'name'    : 'l.facebook.com',
        'match'   : r'^l(m)?\.facebook\.com$',
        'rules'   : ['h', '__tn__'],
        'redirect': 'u',
    },
    {
        'name'    : 'out.reddit.com',
        'match'   : r'^out\.reddit\.com$',
        'rules'   : ['token', 'app_name'],
        'redirect': 'url',
    },
    {
        'name'    : 'steamcommunity.com linkfilter',
        'match'   : r'steamcommunity\.com/linkfilter',
        'matchHref': True,
        'redirect': 'url',
    },
    {
        'name' : 'twitter.com',
        'match': r'^(www\.|mobile\.)?(twitter|x)\.com$',
        'rules': ['s', 't', 'ref_src', 'ref_url', 'src'],
    },
    {
        # proofpoint mangles the target: 'https-3A__www.example.com_path'
        'name'  : 'urldefense.proofpoint.com',
        'match' : r'^urldefense\.proofpoint\.com$',
        'decode': {'param': 'u', 'encoding': 'url2'},
    },
]


def get_default_rules() -> RuleTable:
    return RuleTable(RULES)
