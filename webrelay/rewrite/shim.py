"""
Client-side pieces injected into every rewritten page.

The shim patches the page's own network and navigation primitives at runtime
so that requests built by scripts (which the server cannot see) are routed
through the proxy as well. The navigation bar is a fixed address bar at the
top of the page.
"""

import html
import json
from string import Template

from webrelay.rewrite.urls import RewriteContext

SHIM_ID = "__webrelay_shim"
NAVBAR_ID = "__webrelay_bar"

_SHIM_TEMPLATE = Template(
    r"""<script id="$shim_id">
(function(){
  if(window.__webrelayShim)return;
  window.__webrelayShim=true;
  var PROXY=$proxy;
  var BASE=$base;
  var SKIP=/^\s*(javascript:|mailto:|tel:|data:|blob:|#)/i;
  function sameOrigin(u){
    try{return new URL(u,location.href).origin===location.origin;}
    catch(e){return false;}
  }
  function wp(u){
    if(!u)return u;
    u=String(u);
    if(SKIP.test(u))return u;
    try{
      var abs=new URL(u,BASE).href;
      if(!/^https?:/i.test(abs))return u;
      if(new URL(abs).origin===location.origin)return u;
      return PROXY+'?url='+encodeURIComponent(abs);
    }catch(e){return u;}
  }
  var _fetch=window.fetch;
  if(_fetch){
    window.fetch=function(input,init){
      try{
        if(typeof input==='string'||(window.URL&&input instanceof URL)){
          input=wp(String(input));
        }else if(input&&input.url){
          input=new Request(wp(input.url),input);
        }
      }catch(e){}
      return _fetch.call(this,input,init);
    };
  }
  if(window.XMLHttpRequest){
    var _open=XMLHttpRequest.prototype.open;
    XMLHttpRequest.prototype.open=function(m,u){
      try{arguments[1]=wp(u);}catch(e){}
      return _open.apply(this,arguments);
    };
  }
  try{
    var _assign=location.assign.bind(location);
    var _replace=location.replace.bind(location);
    location.assign=function(u){_assign(wp(u));};
    location.replace=function(u){_replace(wp(u));};
  }catch(e){}
  document.addEventListener('DOMContentLoaded',function(){
    document.querySelectorAll('form').forEach(function(f){
      var a=f.getAttribute('action');
      if(a&&!SKIP.test(a))f.setAttribute('action',wp(a));
    });
    document.querySelectorAll('a[href]').forEach(function(a){
      var h=a.getAttribute('href');
      if(h&&/^https?:\/\//i.test(h)&&!sameOrigin(h))a.setAttribute('href',wp(h));
    });
  });
})();
</script>"""
)

_NAVBAR_TEMPLATE = Template(
    """<div id="$navbar_id" style="position:fixed;top:0;left:0;right:0;
  z-index:2147483647;background:#0d0d0f;border-bottom:1px solid #2a2a30;
  padding:8px 14px;font-family:monospace;font-size:12px;">
  <form action="$endpoint" method="get"
    style="display:flex;align-items:center;gap:10px;margin:0;">
    <a href="$home"
      style="color:#00f5a0;text-decoration:none;font-weight:700;font-size:15px;"
      >&#x2B21;</a>
    <input name="url" value="$base" autocomplete="off"
      style="flex:1;min-width:0;background:#141417;border:1px solid #2a2a30;
      border-radius:8px;color:#e8e8f0;padding:5px 10px;font-family:inherit;
      font-size:12px;"/>
    <button type="submit"
      style="background:#00f5a0;border:none;border-radius:8px;color:#000;
      cursor:pointer;font-weight:700;padding:5px 14px;font-size:12px;">Go</button>
  </form>
</div>
<div style="height:44px"></div>"""
)

def _js_literal(value: str) -> str:
    # "</" would close the surrounding script element early.
    return json.dumps(value).replace("</", "<\\/")


def build_shim(ctx: RewriteContext) -> str:
    return _SHIM_TEMPLATE.substitute(
        shim_id=SHIM_ID,
        proxy=_js_literal(ctx.proxy_endpoint),
        base=_js_literal(ctx.base_url),
    )


def build_navbar(ctx: RewriteContext) -> str:
    return _NAVBAR_TEMPLATE.substitute(
        navbar_id=NAVBAR_ID,
        endpoint=html.escape(ctx.proxy_endpoint, quote=True),
        home=html.escape(ctx.self_origin + "/", quote=True),
        base=html.escape(ctx.base_url, quote=True),
    )
